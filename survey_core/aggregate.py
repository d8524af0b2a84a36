from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, List, NamedTuple, Optional, Sequence

import pandas as pd

from survey_core.config import DEFAULT_OVERLAY_THRESHOLD
from survey_core.filters import column_text, label_sort_key


@dataclass(frozen=True)
class DistRow:
    key: str
    label: str
    count: int
    pct: float

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


class Distributions(NamedTuple):
    baseline: List[DistRow]
    filtered: List[DistRow]


def answered_rows(rows: pd.DataFrame, column: str) -> pd.DataFrame:
    """Rows with a non-blank answer in ``column``."""
    return rows[column_text(rows, column).notna().to_numpy(dtype=bool)]


def _pct(count: int, denom: int) -> float:
    if denom <= 0:
        return 0.0
    return count / denom * 100.0


def _answer_counts(rows: pd.DataFrame, column: str) -> pd.Series:
    return column_text(rows, column).dropna().value_counts()


def build_distributions(
    baseline_rows: pd.DataFrame,
    filtered_rows: pd.DataFrame,
    question_column: str,
    option_order: Optional[Sequence[str]] = None,
    label_overrides: Optional[Dict[str, str]] = None,
) -> Distributions:
    """Per-option counts and percentages for the baseline and filtered cohorts.

    Both cohorts only count non-blank answers, and each percentage is taken
    over that cohort's non-blank denominator. When ``option_order`` is given it
    is used verbatim (options absent from the data get zero rows); otherwise
    the keys are the union of values seen in either cohort, sorted without
    regard to case. The two returned lists share the same key sequence.
    """
    label_overrides = label_overrides or {}
    baseline_counts = _answer_counts(baseline_rows, question_column)
    filtered_counts = _answer_counts(filtered_rows, question_column)
    baseline_den = int(baseline_counts.sum())
    filtered_den = int(filtered_counts.sum())

    if option_order:
        keys = [str(k) for k in option_order]
    else:
        keys = sorted(set(baseline_counts.index) | set(filtered_counts.index), key=label_sort_key)

    def rows_for(counts: pd.Series, denom: int) -> List[DistRow]:
        out: List[DistRow] = []
        for k in keys:
            c = int(counts.get(k, 0))
            out.append(DistRow(key=k, label=label_overrides.get(k, k), count=c, pct=_pct(c, denom)))
        return out

    return Distributions(
        baseline=rows_for(baseline_counts, baseline_den),
        filtered=rows_for(filtered_counts, filtered_den),
    )


def overlay_hidden(filtered_n: int, threshold: Optional[int] = DEFAULT_OVERLAY_THRESHOLD) -> bool:
    """Whether the filtered series must be suppressed for a small cohort."""
    if threshold is None:
        threshold = DEFAULT_OVERLAY_THRESHOLD
    return filtered_n < threshold
