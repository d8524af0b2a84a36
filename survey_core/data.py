from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd
from pydantic import ValidationError

from survey_core.config import TopicConfig


logger = logging.getLogger(__name__)

DATA_DIR = Path(os.getenv("SURVEY_DATA_DIR") or Path(__file__).resolve().parents[1] / "data")
CONFIG_FILE = os.getenv("SURVEY_CONFIG_FILE") or "topic_config.json"
RESPONDENTS_FILE = os.getenv("SURVEY_RESPONDENTS_FILE") or "respondents.min.json"


class DataLoadError(RuntimeError):
    """A configuration or respondent document could not be loaded."""


def get_source_files(data_dir: Optional[Path] = None) -> Tuple[Path, Path]:
    base = Path(data_dir) if data_dir is not None else DATA_DIR
    return base / CONFIG_FILE, base / RESPONDENTS_FILE


def file_signature(path: Path) -> Tuple[str, float]:
    try:
        return str(path), path.stat().st_mtime
    except OSError:
        return str(path), -1.0


def _read_json(path: Path, what: str) -> object:
    try:
        with Path(path).open("r", encoding="utf-8") as fh:
            return json.load(fh)
    except (OSError, ValueError) as exc:
        raise DataLoadError(f"Failed to load {what}: {path} ({exc})") from exc


def load_config(path: Path) -> TopicConfig:
    raw = _read_json(path, "config")
    if not isinstance(raw, dict):
        raise DataLoadError(f"Failed to load config: {path} (expected a JSON object)")
    try:
        return TopicConfig.from_dict(raw)
    except ValidationError as exc:
        raise DataLoadError(f"Failed to load config: {path} ({exc.error_count()} invalid fields)") from exc


def respondents_frame(records: List[Dict[str, object]]) -> pd.DataFrame:
    """Object-dtype frame of respondent records; cell values are left as loaded."""
    if not records:
        return pd.DataFrame()
    return pd.DataFrame(records, dtype=object)


def load_respondents(path: Path) -> pd.DataFrame:
    raw = _read_json(path, "respondents")
    if not isinstance(raw, list) or not all(isinstance(r, dict) for r in raw):
        raise DataLoadError(f"Failed to load respondents: {path} (expected a JSON array of objects)")
    return respondents_frame(raw)


@lru_cache(maxsize=4)
def _load_survey_data_cached(config_sig: Tuple[str, float], respondents_sig: Tuple[str, float]) -> Dict[str, object]:
    config = load_config(Path(config_sig[0]))
    respondents = load_respondents(Path(respondents_sig[0]))
    logger.info(
        "Loaded survey data: %d filters, %d topics, %d respondents",
        len(config.filters),
        len(config.topics),
        len(respondents),
    )
    return {
        "config": config,
        "respondents": respondents,
        "files": [config_sig[0], respondents_sig[0]],
    }


def load_survey_data(data_dir: Optional[Path] = None) -> Dict[str, object]:
    """Config and respondents for the session; both must load or DataLoadError is raised."""
    config_path, respondents_path = get_source_files(data_dir)
    return _load_survey_data_cached(file_signature(config_path), file_signature(respondents_path))
