import json

import pytest

from survey_core import data as data_module
from survey_core.config import TopicConfig
from survey_core.data import respondents_frame


CONFIG = {
    "version": "test",
    "dataset": {"id": "t", "label": "Test survey"},
    "filters": [
        {"id": "age", "label": "Age", "column": "age_band", "type": "multi_select",
         "ui": {"order_mode": "custom", "order": ["30–40", "41-50", "51-60"]}},
        {"id": "region", "label": "Region", "column": "region", "type": "single_select"},
    ],
    "topics": [
        {
            "id": "phaco",
            "label": "Phaco",
            "question_set": [
                {"id": "other_q", "column": "q2", "prompt": "Second question"},
                {"id": "technique", "is_default": True, "column": "q", "prompt": "Technique?",
                 "response": {"order": ["Yes", "No", "Maybe", "Unsure"]},
                 "chart": {"hide_overlay_if_filtered_n_lt": 3}},
            ],
        },
        {
            "id": "glaucoma",
            "label": "Glaucoma",
            "question_set": [
                {"id": "first_line", "column": "q2", "prompt": "First line?",
                 "response": {"label_overrides": {"SLT": "Laser (SLT)"}}},
            ],
        },
        {"id": "empty", "label": "No questions"},
    ],
    "ui_defaults": {"active_topic_id": "phaco"},
}

ROWS = [
    {"age_band": "30-40", "region": "EU", "q": "Yes", "q2": "SLT"},
    {"age_band": "41-50", "region": "EU", "q": "No", "q2": "Drops"},
    {"age_band": "", "region": "US", "q": "Yes", "q2": "SLT"},
    {"age_band": "30-40", "region": None, "q": "", "q2": "Drops"},
    {"age_band": "51-60", "region": "US", "q": "Yes", "q2": None},
    {"age_band": "41-50", "region": "US", "q": "Maybe", "q2": "SLT"},
]


@pytest.fixture
def config():
    return TopicConfig.from_dict(CONFIG)


@pytest.fixture
def rows():
    return respondents_frame([dict(r) for r in ROWS])


@pytest.fixture
def data_ctx(config, rows):
    return {"config": config, "respondents": rows, "files": []}


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    (tmp_path / data_module.CONFIG_FILE).write_text(json.dumps(CONFIG), encoding="utf-8")
    (tmp_path / data_module.RESPONDENTS_FILE).write_text(json.dumps(ROWS), encoding="utf-8")
    monkeypatch.setattr(data_module, "DATA_DIR", tmp_path)
    data_module._load_survey_data_cached.cache_clear()
    yield tmp_path
    data_module._load_survey_data_cached.cache_clear()
