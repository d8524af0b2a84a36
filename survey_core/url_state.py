"""Query-string encoding of the shareable session state.

Format: ``topic=<id>&f_<filterId>=all|<value>|<v1,v2,...>``. Multi-value
selections are comma-joined without further escaping, so a selected value that
itself contains a comma does not survive a round trip.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from urllib.parse import parse_qsl, urlencode

from survey_core.filters import FilterSelection, FilterState


FILTER_PREFIX = "f_"


@dataclass(frozen=True)
class UrlState:
    topic: Optional[str] = None
    filters: FilterState = field(default_factory=dict)


def _split_csv(value: str) -> List[str]:
    if not value:
        return []
    return [s.strip() for s in value.split(",") if s.strip()]


def decode_selection(value: str) -> FilterSelection:
    if not value or value == "all":
        return FilterSelection.all()
    if "," in value:
        return FilterSelection.multi(_split_csv(value))
    return FilterSelection.single(value)


def encode_selection(sel: Optional[FilterSelection]) -> str:
    if sel is None or sel.mode == "all":
        return "all"
    if sel.mode == "single":
        return sel.value or "all"
    return ",".join(sel.values)


def parse_url_state(search: str) -> UrlState:
    topic: Optional[str] = None
    filters: FilterState = {}
    for key, value in parse_qsl((search or "").lstrip("?"), keep_blank_values=True):
        if key == "topic":
            if topic is None:
                topic = value
            continue
        if key.startswith(FILTER_PREFIX):
            filters[key[len(FILTER_PREFIX):]] = decode_selection(value)
    return UrlState(topic=topic, filters=filters)


def query_params(topic: str, filters: FilterState) -> List[Tuple[str, str]]:
    params = [("topic", topic)]
    for filter_id, sel in filters.items():
        params.append((f"{FILTER_PREFIX}{filter_id}", encode_selection(sel)))
    return params


def to_query_string(topic: str, filters: FilterState) -> str:
    return urlencode(query_params(topic, filters))
