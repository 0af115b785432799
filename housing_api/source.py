from __future__ import annotations

import logging
import re
from urllib.parse import urlparse

import requests

logger = logging.getLogger(__name__)

DEFAULT_CSV_URL = "https://docs.google.com/spreadsheets/d/1ewPYAHgZJc6jV_i8D1634_klao-D78UqK59AlNVylKk/edit?usp=sharing"
FETCH_TIMEOUT = 30

# The server only fetches published sheets; arbitrary hosts are refused.
ALLOWED_SOURCE_HOSTS = frozenset({"docs.google.com"})


class SourceFetchError(RuntimeError):
    """The CSV source could not be retrieved."""


def to_export_url(url: str) -> str:
    """Rewrite a Google Sheets share/edit link into its CSV export URL."""
    if "docs.google.com/spreadsheets" in url:
        match = re.search(r"/d/([a-zA-Z0-9-_]+)", url)
        if match:
            return f"https://docs.google.com/spreadsheets/d/{match.group(1)}/export?format=csv"
    return url


def check_source_url(url: str, allowed_hosts: frozenset = ALLOWED_SOURCE_HOSTS) -> str:
    """Return `url` unchanged if it is an https URL on an allowed host."""
    parsed = urlparse(url or "")
    host = (parsed.hostname or "").lower()
    if parsed.scheme != "https" or host not in allowed_hosts:
        raise SourceFetchError(f"Source host not allowed: {host or url!r}")
    return url


def fetch_csv_text(url: str = DEFAULT_CSV_URL, *, timeout: float = FETCH_TIMEOUT) -> str:
    export_url = check_source_url(to_export_url(url))
    try:
        resp = requests.get(export_url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise SourceFetchError(f"Failed to fetch CSV from {export_url}: {exc}") from exc
    resp.encoding = resp.encoding or "utf-8"
    text = resp.text
    logger.info("Fetched %d bytes of CSV from %s", len(text), export_url)
    return text
