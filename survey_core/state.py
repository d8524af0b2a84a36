from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping

from survey_core.config import FilterDef, TopicConfig
from survey_core.filters import FilterSelection, FilterState
from survey_core.url_state import parse_url_state, to_query_string


@dataclass(frozen=True)
class SessionState:
    topic_id: str = ""
    filters: FilterState = field(default_factory=dict)

    @property
    def query_string(self) -> str:
        return to_query_string(self.topic_id, self.filters)


def initial_state(config: TopicConfig, search: str = "") -> SessionState:
    url = parse_url_state(search)
    topic_id = url.topic if url.topic is not None else config.default_topic_id()
    return SessionState(topic_id=topic_id, filters=dict(url.filters))


def _with_filter(state: SessionState, filter_id: str, sel: FilterSelection) -> SessionState:
    filters = dict(state.filters)
    filters[filter_id] = sel
    return replace(state, filters=filters)


def select_topic(state: SessionState, topic_id: str) -> SessionState:
    return replace(state, topic_id=topic_id)


def toggle_value(state: SessionState, filter_id: str, value: str) -> SessionState:
    current = state.filters.get(filter_id)
    selected = list(current.values) if current is not None and current.mode == "multi" else []
    if value in selected:
        selected.remove(value)
    else:
        selected.append(value)
    if not selected:
        return _with_filter(state, filter_id, FilterSelection.all())
    return _with_filter(state, filter_id, FilterSelection.multi(selected))


def set_values(state: SessionState, filter_id: str, values: Iterable[str]) -> SessionState:
    values = list(values)
    if not values:
        return _with_filter(state, filter_id, FilterSelection.all())
    return _with_filter(state, filter_id, FilterSelection.multi(values))


def select_all(state: SessionState, filter_id: str, options: Iterable[str]) -> SessionState:
    return _with_filter(state, filter_id, FilterSelection.multi(options))


def clear_filter(state: SessionState, filter_id: str) -> SessionState:
    return _with_filter(state, filter_id, FilterSelection.all())


def clear_all(state: SessionState) -> SessionState:
    return replace(state, filters={})


def reset_baseline(state: SessionState, filter_defs: Iterable[FilterDef]) -> SessionState:
    return replace(state, filters={fdef.id: FilterSelection.all() for fdef in filter_defs})


def reduce(state: SessionState, action: Mapping[str, Any]) -> SessionState:
    """Apply one UI action, e.g. ``{"type": "toggle_value", "filter_id": "age", "value": "30-40"}``."""
    kind = action.get("type")
    if kind == "select_topic":
        return select_topic(state, action["topic_id"])
    if kind == "toggle_value":
        return toggle_value(state, action["filter_id"], action["value"])
    if kind == "set_values":
        return set_values(state, action["filter_id"], action.get("values") or [])
    if kind == "select_all":
        return select_all(state, action["filter_id"], action.get("options") or [])
    if kind == "clear_filter":
        return clear_filter(state, action["filter_id"])
    if kind == "clear_all":
        return clear_all(state)
    if kind == "reset_baseline":
        return reset_baseline(state, action.get("filter_defs") or [])
    raise ValueError(f"Unknown action type: {kind!r}")
