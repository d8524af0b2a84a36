from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


DEFAULT_OVERLAY_THRESHOLD = 10


class ConfigModel(BaseModel):
    """Base for config sections: an explicit ``null`` means "use the default"."""

    @model_validator(mode="before")
    @classmethod
    def _null_as_default(cls, data):
        if not isinstance(data, dict):
            return data
        fields = cls.model_fields
        return {
            k: v
            for k, v in data.items()
            if v is not None or k not in fields or fields[k].is_required()
        }


class FilterUi(ConfigModel):
    order_mode: Literal["alpha", "custom"] = "alpha"
    order: List[str] = Field(default_factory=list)


class FilterValues(ConfigModel):
    all_value: Optional[str] = None
    yes_value: Optional[str] = None
    no_value: Optional[str] = None


class FilterDef(ConfigModel):
    id: str
    label: str = ""
    column: str
    type: Literal["single_select", "multi_select"] = "multi_select"
    ui: FilterUi = Field(default_factory=FilterUi)
    values: Optional[FilterValues] = None


class QuestionResponse(ConfigModel):
    exclude_values: List[Optional[str]] = Field(default_factory=list)
    order_mode: Literal["alpha", "custom"] = "alpha"
    order: List[str] = Field(default_factory=list)
    label_overrides: Dict[str, str] = Field(default_factory=dict)


class QuestionChart(ConfigModel):
    kind: Literal["bar_distribution"] = "bar_distribution"
    show_baseline_gray: bool = True
    overlay_filtered_color: bool = True
    show_n_on_bars: bool = True
    show_n_for: Literal["filtered_only", "both"] = "filtered_only"
    hide_overlay_if_filtered_n_lt: int = DEFAULT_OVERLAY_THRESHOLD
    hide_overlay_note: Optional[str] = None


class QuestionDef(ConfigModel):
    id: str
    is_default: bool = False
    type: Literal["single_select", "multi_select"] = "single_select"
    column: str
    prompt: str = ""
    response: QuestionResponse = Field(default_factory=QuestionResponse)
    chart: QuestionChart = Field(default_factory=QuestionChart)

    @property
    def overlay_threshold(self) -> int:
        return int(self.chart.hide_overlay_if_filtered_n_lt)

    @property
    def overlay_note(self) -> str:
        if self.chart.hide_overlay_note:
            return self.chart.hide_overlay_note
        return f"Filtered results hidden (n < {self.overlay_threshold}). Baseline shown in gray."


class TopicDef(ConfigModel):
    id: str
    label: str = ""
    short_label: Optional[str] = None
    question_set: List[QuestionDef] = Field(default_factory=list)


class DatasetInfo(ConfigModel):
    id: str = ""
    label: str = ""
    notes: Optional[str] = None


class UiDefaults(ConfigModel):
    active_topic_id: Optional[str] = None
    active_question_id_by_topic: Dict[str, str] = Field(default_factory=dict)


class TopicConfig(ConfigModel):
    """Static survey configuration: filters, topics and their questions.

    Loaded once per session and treated as read-only. Optional fields fall back
    to defaults instead of failing validation.
    """

    version: str = ""
    dataset: DatasetInfo = Field(default_factory=DatasetInfo)
    filters: List[FilterDef] = Field(default_factory=list)
    topics: List[TopicDef] = Field(default_factory=list)
    ui_defaults: UiDefaults = Field(default_factory=UiDefaults)

    @classmethod
    def from_dict(cls, raw: dict) -> "TopicConfig":
        return cls.model_validate(raw)

    def topic(self, topic_id: Optional[str]) -> Optional[TopicDef]:
        """Topic with ``topic_id``, else the first configured topic."""
        for t in self.topics:
            if t.id == topic_id:
                return t
        return self.topics[0] if self.topics else None

    def default_topic_id(self) -> str:
        if self.ui_defaults.active_topic_id:
            return self.ui_defaults.active_topic_id
        return self.topics[0].id if self.topics else ""

    def default_question(self, topic: Optional[TopicDef]) -> Optional[QuestionDef]:
        if topic is None or not topic.question_set:
            return None
        wanted = self.ui_defaults.active_question_id_by_topic.get(topic.id)
        if wanted:
            for q in topic.question_set:
                if q.id == wanted:
                    return q
        for q in topic.question_set:
            if q.is_default:
                return q
        return topic.question_set[0]

    def filter_def(self, filter_id: str) -> Optional[FilterDef]:
        for f in self.filters:
            if f.id == filter_id:
                return f
        return None
