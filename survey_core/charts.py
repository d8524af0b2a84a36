from __future__ import annotations

import io
import re
from typing import Any, Dict, List, Sequence, Tuple

import altair as alt
import pandas as pd

from survey_core.aggregate import DistRow

alt.data_transformers.disable_max_rows()


DEFAULT_ACCENT = "#2563eb"
BASELINE_GRAY = "#d1d5db"

TOPIC_ACCENTS = {
    "phaco": "#2563eb",
    "presbyopia": "#7c3aed",
    "astigmatism": "#0ea5e9",
    "refractive_surgery": "#10b981",
    "ocular_surface": "#f59e0b",
    "glaucoma": "#ef4444",
    "retina": "#8b5cf6",
}


def to_vega_spec(chart: alt.TopLevelMixin) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def accent_for(topic_id: str) -> str:
    return TOPIC_ACCENTS.get(topic_id, DEFAULT_ACCENT)


def nice_ceiling(value: float) -> int:
    for step in (10, 20, 30, 40, 50, 60, 75):
        if value <= step:
            return step
    return 100


def _hard_split(token: str, max_chars: int) -> List[str]:
    out = []
    while len(token) > max_chars:
        out.append(token[: max_chars - 1] + "-")
        token = token[max_chars - 1 :]
    if token:
        out.append(token)
    return out


def wrap_label(text: str, max_chars: int = 18, max_lines: int = 4) -> List[str]:
    """Wrap an axis label on spaces and hyphens.

    Hyphens stay attached to the preceding word, words longer than a line are
    split with a trailing hyphen, and labels needing more than ``max_lines``
    lines are cut with an ellipsis.
    """
    segments: List[str] = []
    for tok in re.split(r"(\s+|-)", (text or "").strip()):
        if not tok or tok.isspace():
            continue
        if tok == "-":
            if segments and not segments[-1].endswith("-"):
                segments[-1] += "-"
            else:
                segments.append("-")
        elif len(tok) > max_chars:
            segments.extend(_hard_split(tok, max_chars))
        else:
            segments.append(tok)

    lines: List[str] = []
    current = ""
    truncated = False
    for seg in segments:
        candidate = f"{current} {seg}" if current else seg
        if len(candidate) <= max_chars:
            current = candidate
            continue
        if not current:
            lines.extend(_hard_split(seg, max_chars)[: max_lines - len(lines)])
            continue
        lines.append(current)
        current = seg
        if len(lines) >= max_lines:
            current = ""
            truncated = True
            break
    if current and len(lines) < max_lines:
        lines.append(current)

    if truncated:
        last = lines[-1]
        lines[-1] = last[: max_chars - 1] + "…" if len(last) > max_chars - 1 else last + "…"
    return lines


def chart_frame(baseline: Sequence[DistRow], filtered: Sequence[DistRow]) -> pd.DataFrame:
    by_label = {r.label: r for r in filtered}
    rows = []
    for b in baseline:
        f = by_label.get(b.label)
        rows.append(
            {
                "label": b.label,
                "axis_label": "\n".join(wrap_label(b.label)),
                "baseline_pct": round(b.pct, 2),
                "baseline_n": b.count,
                "filtered_pct": round(f.pct if f else 0.0, 2),
                "filtered_n": f.count if f else 0,
            }
        )
    return pd.DataFrame(
        rows,
        columns=["label", "axis_label", "baseline_pct", "baseline_n", "filtered_pct", "filtered_n"],
    )


def overlay_bar_chart(
    baseline: Sequence[DistRow],
    filtered: Sequence[DistRow],
    *,
    accent: str = DEFAULT_ACCENT,
    show_overlay: bool = True,
    show_n_on_bars: bool = True,
    height: int = 420,
) -> alt.LayerChart:
    """Gray baseline bars with the filtered distribution drawn on top."""
    df = chart_frame(baseline, filtered)
    max_pct = float(df[["baseline_pct", "filtered_pct"]].to_numpy().max()) if not df.empty else 0.0
    y_max = nice_ceiling(max_pct)

    x = alt.X(
        "axis_label:N",
        sort=df["axis_label"].tolist(),
        title=None,
        axis=alt.Axis(labelAngle=0, labelExpr="split(datum.label, '\\n')", labelFontWeight=600),
    )
    base = alt.Chart(df).encode(x=x)
    baseline_bars = base.mark_bar(color=BASELINE_GRAY, size=44).encode(
        y=alt.Y("baseline_pct:Q", title="% of respondents", scale=alt.Scale(domain=[0, y_max])),
        tooltip=[
            alt.Tooltip("label:N", title="Response"),
            alt.Tooltip("baseline_pct:Q", title="Baseline %", format=".2f"),
            alt.Tooltip("baseline_n:Q", title="Baseline n"),
        ],
    )
    layers: List[alt.Chart] = [baseline_bars]
    if show_overlay:
        overlay_bars = base.mark_bar(color=accent, size=24).encode(
            y=alt.Y("filtered_pct:Q"),
            tooltip=[
                alt.Tooltip("label:N", title="Response"),
                alt.Tooltip("filtered_pct:Q", title="Filtered %", format=".2f"),
                alt.Tooltip("filtered_n:Q", title="Filtered n"),
            ],
        )
        layers.append(overlay_bars)
        if show_n_on_bars:
            labels = base.mark_text(dy=-8, fontWeight="bold", color="#111827").encode(
                y=alt.Y("filtered_pct:Q"),
                text=alt.Text("filtered_n:Q"),
            )
            layers.append(labels)
    return alt.layer(*layers).properties(height=height)


def export_file_name(topic_id: str) -> str:
    return f"escrs_{topic_id}.png"


def export_chart_png(chart: alt.TopLevelMixin, topic_id: str, *, scale: float = 2.0) -> Tuple[str, bytes]:
    """Render a chart to PNG bytes (needs the vl-convert backend altair uses for images)."""
    buf = io.BytesIO()
    chart.save(buf, format="png", scale_factor=scale)
    return export_file_name(topic_id), buf.getvalue()
