import pytest
from pydantic import ValidationError

from survey_core.config import TopicConfig


def test_missing_optional_fields_get_defaults():
    cfg = TopicConfig.from_dict(
        {
            "filters": [{"id": "age", "column": "age_band"}],
            "topics": [{"id": "t", "question_set": [{"id": "q", "column": "col"}]}],
        }
    )
    q = cfg.topics[0].question_set[0]
    assert q.overlay_threshold == 10
    assert q.response.order == []
    assert q.response.label_overrides == {}
    assert q.overlay_note == "Filtered results hidden (n < 10). Baseline shown in gray."
    assert cfg.filters[0].ui.order_mode == "alpha"


def test_explicit_nulls_get_defaults():
    cfg = TopicConfig.from_dict(
        {
            "version": None,
            "filters": [{"id": "age", "column": "age_band", "label": None, "ui": {"order": None}}],
            "topics": [
                {
                    "id": "t",
                    "label": None,
                    "question_set": [
                        {
                            "id": "q",
                            "column": "col",
                            "response": {"order": None, "label_overrides": None},
                            "chart": {"hide_overlay_if_filtered_n_lt": None, "show_n_on_bars": None},
                        }
                    ],
                },
                {"id": "u", "question_set": None},
            ],
            "ui_defaults": None,
        }
    )
    q = cfg.topics[0].question_set[0]
    assert q.overlay_threshold == 10
    assert q.response.order == []
    assert q.response.label_overrides == {}
    assert q.chart.show_n_on_bars is True
    assert cfg.filters[0].label == ""
    assert cfg.filters[0].ui.order == []
    assert cfg.topics[1].question_set == []
    assert cfg.version == ""
    assert cfg.default_topic_id() == "t"


def test_null_required_field_still_rejected():
    with pytest.raises(ValidationError):
        TopicConfig.from_dict({"topics": [{"id": "t", "question_set": [{"id": "q", "column": None}]}]})


def test_unknown_fields_are_ignored():
    cfg = TopicConfig.from_dict({"version": "1", "colors": {"phaco": "#000"}, "topics": []})
    assert cfg.version == "1"


def test_configured_threshold_and_note(config):
    q = config.default_question(config.topic("phaco"))
    assert q.overlay_threshold == 3
    assert q.overlay_note == "Filtered results hidden (n < 3). Baseline shown in gray."


def test_topic_lookup_falls_back_to_first(config):
    assert config.topic("glaucoma").id == "glaucoma"
    assert config.topic("nope").id == "phaco"
    assert config.topic(None).id == "phaco"
    assert TopicConfig().topic("x") is None


def test_default_question_order_of_preference(config):
    assert config.default_question(config.topic("phaco")).id == "technique"
    assert config.default_question(config.topic("glaucoma")).id == "first_line"
    assert config.default_question(config.topic("empty")) is None
    assert config.default_question(None) is None

    pinned = TopicConfig.from_dict(
        {
            "topics": [
                {"id": "t", "question_set": [
                    {"id": "a", "column": "a", "is_default": True},
                    {"id": "b", "column": "b"},
                ]}
            ],
            "ui_defaults": {"active_question_id_by_topic": {"t": "b"}},
        }
    )
    assert pinned.default_question(pinned.topic("t")).id == "b"


def test_filter_def_lookup(config):
    assert config.filter_def("region").column == "region"
    assert config.filter_def("missing") is None
