from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from housing_api.schemas import DashboardFiltersModel, MetaCitiesResponse, MetaYearsResponse
from housing_api.source import DEFAULT_CSV_URL, SourceFetchError, fetch_csv_text
from housing_core.data import load_dashboard_data, prepare_context, records_to_frame
from housing_core.filters import DashboardFilters, normalize_filters
from housing_core.metrics_comparisons import compute_comparisons
from housing_core.metrics_correlations import compute_correlations
from housing_core.metrics_key import compute_key_metrics
from housing_core.metrics_relationships import compute_relationships
from housing_core.metrics_timeseries import compute_time_series

app = FastAPI(title="Housing Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _filters_from_model(model: DashboardFiltersModel, data_ctx: Dict[str, Any]) -> DashboardFilters:
    raw = model.model_dump()
    return normalize_filters(raw, available_cities=data_ctx.get("cities", []), available_years=data_ctx.get("years", []))


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(exc: Exception, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


def _load(source_url: str) -> Dict[str, Any]:
    return load_dashboard_data(fetch_csv_text(source_url))


def _page(name: str, filters: DashboardFiltersModel, source_url: str, compute: Callable[..., Dict[str, Any]]) -> JSONResponse:
    try:
        data_ctx = _load(source_url)
        f = _filters_from_model(filters, data_ctx)
        ctx = prepare_context(f, data_ctx)
        return _json(compute(f, ctx))
    except SourceFetchError as exc:
        logger.warning("%s: source fetch failed: %s", name, exc)
        return _error(exc, 502)
    except Exception as exc:
        logger.exception("%s failed", name)
        return _error(exc, 500)


@app.get("/meta/cities")
def meta_cities(source_url: str = Query(default=DEFAULT_CSV_URL)):
    try:
        data_ctx = _load(source_url)
        return _json(MetaCitiesResponse(cities=list(data_ctx.get("cities", []))).model_dump())
    except SourceFetchError as exc:
        logger.warning("meta_cities: source fetch failed: %s", exc)
        return _error(exc, 502)
    except Exception as exc:
        logger.exception("meta_cities failed")
        return _error(exc, 500)


@app.get("/meta/years")
def meta_years(source_url: str = Query(default=DEFAULT_CSV_URL)):
    try:
        data_ctx = _load(source_url)
        return _json(MetaYearsResponse(years=list(data_ctx.get("years", []))).model_dump())
    except SourceFetchError as exc:
        logger.warning("meta_years: source fetch failed: %s", exc)
        return _error(exc, 502)
    except Exception as exc:
        logger.exception("meta_years failed")
        return _error(exc, 500)


@app.post("/key-metrics")
def key_metrics(filters: DashboardFiltersModel, source_url: str = Query(default=DEFAULT_CSV_URL)):
    return _page("key_metrics", filters, source_url, compute_key_metrics)


@app.post("/comparisons")
def comparisons(filters: DashboardFiltersModel, source_url: str = Query(default=DEFAULT_CSV_URL)):
    return _page("comparisons", filters, source_url, compute_comparisons)


@app.post("/correlations")
def correlations(filters: DashboardFiltersModel, source_url: str = Query(default=DEFAULT_CSV_URL)):
    return _page("correlations", filters, source_url, compute_correlations)


@app.post("/time-series")
def time_series(filters: DashboardFiltersModel, source_url: str = Query(default=DEFAULT_CSV_URL)):
    return _page("time_series", filters, source_url, compute_time_series)


@app.post("/relationships")
def relationships(filters: DashboardFiltersModel, source_url: str = Query(default=DEFAULT_CSV_URL)):
    return _page("relationships", filters, source_url, compute_relationships)


@app.post("/export/records")
def export_records(filters: DashboardFiltersModel, source_url: str = Query(default=DEFAULT_CSV_URL)):
    try:
        data_ctx = _load(source_url)
        f = _filters_from_model(filters, data_ctx)
        ctx = prepare_context(f, data_ctx)
        export_df = records_to_frame(ctx["filtered_records"])
        if "date" in export_df.columns:
            export_df["date"] = export_df["date"].dt.strftime("%Y-%m-%d")
        csv_bytes = export_df.to_csv(index=False).encode("utf-8")
        return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": "attachment; filename=records.csv"})
    except SourceFetchError as exc:
        logger.warning("export_records: source fetch failed: %s", exc)
        return _error(exc, 502)
    except Exception as exc:
        logger.exception("export_records failed")
        return _error(exc, 500)
