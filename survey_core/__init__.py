"""Core (UI-agnostic) survey explorer logic.

This package contains:
- config model (topics, questions, filters)
- filter evaluation and option listing
- baseline vs filtered distribution building
- URL query-string state codec and session reducer
- data loading (JSON -> pandas)
- chart helpers (Altair -> Vega-Lite spec dict, PNG export)
"""
