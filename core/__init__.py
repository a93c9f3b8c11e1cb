"""Core (UI-agnostic) vertical impressions logic.

This package contains:
- table loading (CSV -> TableData) and column resolution
- value normalization and advertiser name matching
- dataset reconciliation (verticals, advertisers per vertical, YoY detail)
- chart layout, selection state and JSON-serializable page payloads
- chart helpers (Altair -> Vega-Lite spec dict)
"""
