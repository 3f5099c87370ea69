"""Core (UI-agnostic) parts inventory analysis logic.

This package contains:
- dataset loading (CSV/XLSX -> raw rows) and per-view context
- record normalization, grouping by part and dispersion stats
- filter normalization, filtering and toggle sorting
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
