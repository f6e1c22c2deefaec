#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Runtime configuration: defaults merged with optional JSON files under data/."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from engagement.utils import EngagementError


DATA_DIR = Path(__file__).resolve().parents[1] / "data"

DB_PATH_ENV = "ENGAGEMENT_DB_PATH"
CREDENTIALS_ENV = "GOOGLE_APPLICATION_CREDENTIALS"
DEFAULT_DB_PATH = "./engagement.db"


DEFAULT_INGESTION_CONFIG = {
    "sheet_name_n": "Inserer BG N",
    "sheet_name_n1": "Inserer BG N-1",
    # 1-based; rows above are the fixed template header
    "first_data_row": 6,
    "fallback_index_n": 1,
    "fallback_index_n1": 2,
    "source_prefix": "source-excel/",
    "source_suffix": ".xlsm",
    "bucket": "engagement-uploads",
    "content_type": "application/vnd.ms-excel.sheet.macroEnabled.12",
    "coa_batch_size": 400,
    "coa_template_name": "PC Mauritanien",
    "coa_default_template_id": "pc-mauritanien",
    "pcm_input": "plan_comptable_mauritanien_new.txt",
    "pcm_output": "plan_comptable_mauritanien.json",
}


DEFAULT_REVIEW_CONFIG = {
    "excluded_sections": ["team-management", "project-signoffs-summary"],
    # sidebar tree used for hierarchical sign-off: [{id, title, sign_off_level, children}]
    "sections": [],
}


def _load_config(name: str, defaults: Dict[str, Any], data_dir: Optional[Path] = None) -> Dict[str, Any]:
    config_path = (data_dir or DATA_DIR) / name
    if not config_path.exists():
        return dict(defaults)
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise EngagementError("CONFIG_INVALID", f"Invalid JSON in {config_path.name}: {exc}") from exc
    if not isinstance(data, dict):
        raise EngagementError("CONFIG_INVALID", f"{config_path.name} must contain an object")
    merged = dict(defaults)
    merged.update(data)
    return merged


def load_ingestion_config(data_dir: Optional[Path] = None) -> Dict[str, Any]:
    return _load_config("ingestion_config.json", DEFAULT_INGESTION_CONFIG, data_dir)


def load_review_config(data_dir: Optional[Path] = None) -> Dict[str, Any]:
    return _load_config("review_config.json", DEFAULT_REVIEW_CONFIG, data_dir)


def default_db_path() -> str:
    return os.environ.get(DB_PATH_ENV) or DEFAULT_DB_PATH


def require_credentials() -> Path:
    """Return the service-account file named by the environment.

    Offline imports refuse to run without it, before touching any input.
    """
    raw = os.environ.get(CREDENTIALS_ENV)
    if not raw:
        raise EngagementError(
            "CREDENTIALS_MISSING",
            f"Set {CREDENTIALS_ENV} to a valid service account JSON file.",
        )
    path = Path(raw)
    if not path.is_file():
        raise EngagementError(
            "CREDENTIALS_MISSING",
            f"Set {CREDENTIALS_ENV} to a valid service account JSON file.",
            {"path": raw},
        )
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise EngagementError("CREDENTIALS_INVALID", f"Credential file is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise EngagementError("CREDENTIALS_INVALID", "Credential file must contain an object")
    return path
