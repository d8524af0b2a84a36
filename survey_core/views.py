from __future__ import annotations

from typing import Any, Dict

import pandas as pd

from survey_core.aggregate import DistRow, answered_rows, build_distributions, overlay_hidden
from survey_core.charts import accent_for, export_file_name, overlay_bar_chart, to_vega_spec
from survey_core.config import DEFAULT_OVERLAY_THRESHOLD, TopicConfig
from survey_core.filters import apply_filters, filter_state_to_dict
from survey_core.state import SessionState


def compute_topic_view(session: SessionState, data_ctx: Dict[str, Any], *, with_chart: bool = True) -> Dict[str, Any]:
    """Everything the chart page shows for the active topic and filter selections."""
    config: TopicConfig = data_ctx["config"]
    respondents: pd.DataFrame = data_ctx.get("respondents", pd.DataFrame())

    topic = config.topic(session.topic_id)
    question = config.default_question(topic)
    payload: Dict[str, Any] = {
        "topic": {"id": topic.id, "label": topic.label} if topic else None,
        "question": None,
        "filters": filter_state_to_dict(session.filters),
        "query_string": session.query_string,
        "baseline": [],
        "filtered": [],
        "baseline_n": 0,
        "filtered_n": 0,
        "threshold": DEFAULT_OVERLAY_THRESHOLD,
        "overlay_hidden": False,
        "overlay_note": None,
        "show_n_on_bars": True,
        "export_name": export_file_name(session.topic_id),
        "charts": {},
    }
    if question is None:
        return payload

    baseline_rows = answered_rows(respondents, question.column)
    filtered_rows = answered_rows(apply_filters(baseline_rows, config.filters, session.filters), question.column)
    dists = build_distributions(
        baseline_rows,
        filtered_rows,
        question.column,
        option_order=question.response.order,
        label_overrides=question.response.label_overrides,
    )
    hidden = overlay_hidden(len(filtered_rows), question.overlay_threshold)

    payload.update(
        {
            "question": {"id": question.id, "prompt": question.prompt, "column": question.column},
            "baseline": [r.to_dict() for r in dists.baseline],
            "filtered": [r.to_dict() for r in dists.filtered],
            "baseline_n": sum(r.count for r in dists.baseline),
            "filtered_n": int(len(filtered_rows)),
            "threshold": question.overlay_threshold,
            "overlay_hidden": hidden,
            "overlay_note": question.overlay_note if hidden else None,
            "show_n_on_bars": question.chart.show_n_on_bars,
        }
    )
    if with_chart:
        chart = topic_chart(payload)
        payload["charts"] = {"distribution": to_vega_spec(chart)}
    return payload


def topic_chart(payload: Dict[str, Any]):
    """Overlay chart for a payload returned by compute_topic_view."""
    topic = payload.get("topic") or {}
    return overlay_bar_chart(
        [DistRow(**r) for r in payload.get("baseline", [])],
        [DistRow(**r) for r in payload.get("filtered", [])],
        accent=accent_for(topic.get("id", "")),
        show_overlay=not payload.get("overlay_hidden", False),
        show_n_on_bars=payload.get("show_n_on_bars", True),
    )
