from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Literal, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from survey_core.config import FilterDef


Mode = Literal["all", "single", "multi"]
_MODES = ("all", "single", "multi")


@dataclass(frozen=True)
class FilterSelection:
    mode: Mode = "all"
    value: Optional[str] = None
    values: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def all(cls) -> "FilterSelection":
        return cls("all")

    @classmethod
    def single(cls, value: Optional[str]) -> "FilterSelection":
        return cls("single", value=value)

    @classmethod
    def multi(cls, values: Iterable[str]) -> "FilterSelection":
        return cls("multi", values=tuple(values))

    @classmethod
    def from_dict(cls, raw: Mapping[str, object]) -> "FilterSelection":
        mode = raw.get("mode")
        if mode not in _MODES:
            return cls.all()
        if mode == "single":
            value = raw.get("value")
            return cls.single(None if value is None else str(value))
        if mode == "multi":
            return cls.multi(str(v) for v in (raw.get("values") or []) if v is not None)
        return cls.all()

    def to_dict(self) -> Dict[str, object]:
        if self.mode == "single":
            return {"mode": "single", "value": self.value}
        if self.mode == "multi":
            return {"mode": "multi", "values": list(self.values)}
        return {"mode": "all"}

    @property
    def constrains(self) -> bool:
        """True when rows with a blank cell are excluded by this selection."""
        return self.mode != "all"

    @property
    def allowed(self) -> Optional[frozenset]:
        """Accepted cell texts, or None when no value constraint applies."""
        if self.mode == "single" and self.value:
            return frozenset([self.value])
        if self.mode == "multi" and self.values:
            return frozenset(self.values)
        return None


FilterState = Dict[str, FilterSelection]


def normalize_filter_state(raw: Optional[Mapping[str, object]]) -> FilterState:
    out: FilterState = {}
    for filter_id, sel in (raw or {}).items():
        if isinstance(sel, FilterSelection):
            out[str(filter_id)] = sel
        elif isinstance(sel, Mapping):
            out[str(filter_id)] = FilterSelection.from_dict(sel)
        else:
            out[str(filter_id)] = FilterSelection.all()
    return out


def filter_state_to_dict(state: FilterState) -> Dict[str, Dict[str, object]]:
    return {filter_id: sel.to_dict() for filter_id, sel in state.items()}


def cell_text(value: object) -> Optional[str]:
    """Stringified cell value, or None for a blank (missing, null, whitespace) cell."""
    if value is None:
        return None
    if pd.api.types.is_scalar(value) and pd.isna(value):
        return None
    if isinstance(value, (bool, np.bool_)):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    text = str(value)
    if not text.strip():
        return None
    return text


def is_blank(value: object) -> bool:
    return cell_text(value) is None


def column_text(rows: pd.DataFrame, column: str) -> pd.Series:
    if column not in rows.columns:
        return pd.Series([None] * len(rows), index=rows.index, dtype=object)
    return rows[column].map(cell_text).astype(object)


def apply_filters(rows: pd.DataFrame, filter_defs: Iterable[FilterDef], state: FilterState) -> pd.DataFrame:
    """Rows matching every active filter selection, in input order.

    Blank cells never satisfy a filter that is not in ``all`` mode. Selections
    whose id has no filter definition are ignored.
    """
    out = rows
    for fdef in filter_defs:
        sel = state.get(fdef.id)
        if sel is None or not sel.constrains:
            continue
        cells = column_text(out, fdef.column)
        keep = cells.notna()
        allowed = sel.allowed
        if allowed is not None:
            keep &= cells.isin(list(allowed))
        out = out[keep.to_numpy(dtype=bool)]
        if out.empty:
            break
    if out is rows:
        out = rows.copy()
    return out


def label_sort_key(value: str) -> Tuple[str, str]:
    """Case-insensitive alphabetical order; raw text breaks ties."""
    return (value.casefold(), value)


def _norm_option(value: str) -> str:
    value = value.strip().replace("–", "-").replace("—", "-")
    return re.sub(r"\s+", " ", value)


def filter_options(rows: pd.DataFrame, fdef: FilterDef) -> List[str]:
    """Distinct non-blank values of a filter column in display order."""
    values = sorted({t.strip() for t in column_text(rows, fdef.column).dropna()}, key=label_sort_key)
    if fdef.ui.order_mode == "custom" and fdef.ui.order:
        rank = {}
        for i, v in enumerate(fdef.ui.order):
            rank.setdefault(_norm_option(v), i)
        unranked = len(fdef.ui.order)
        return sorted(values, key=lambda v: (rank.get(_norm_option(v), unranked), label_sort_key(v)))
    return values
