from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class FilterSelectionModel(BaseModel):
    mode: Literal["all", "single", "multi"] = "all"
    value: Optional[str] = None
    values: List[str] = Field(default_factory=list)


class SessionStateModel(BaseModel):
    topic: Optional[str] = None
    filters: Dict[str, FilterSelectionModel] = Field(default_factory=dict)


class QueryStringResponse(BaseModel):
    query_string: str


class FilterOptionsModel(BaseModel):
    id: str
    label: str
    column: str
    options: List[str]
