"""Core (UI-agnostic) housing dashboard logic.

This package contains:
- CSV text parsing (text -> header-keyed rows)
- record normalization (rows -> typed HousingRecord)
- filter normalization and the validity gate
- derived views (most recent by city, growth, correlations, grouped series)
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
