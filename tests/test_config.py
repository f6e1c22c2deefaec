import pytest

from engagement.config import (
    DEFAULT_INGESTION_CONFIG,
    default_db_path,
    load_ingestion_config,
    load_review_config,
    require_credentials,
)
from engagement.utils import EngagementError


def test_defaults_without_files(tmp_path):
    assert load_ingestion_config(tmp_path) == DEFAULT_INGESTION_CONFIG
    assert load_review_config(tmp_path)["sections"] == []


def test_file_overrides_defaults(tmp_path):
    (tmp_path / "ingestion_config.json").write_text('{"first_data_row": 8}', encoding="utf-8")
    config = load_ingestion_config(tmp_path)
    assert config["first_data_row"] == 8
    assert config["sheet_name_n"] == "Inserer BG N"


def test_invalid_config(tmp_path):
    (tmp_path / "review_config.json").write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(EngagementError) as exc_info:
        load_review_config(tmp_path)
    assert exc_info.value.code == "CONFIG_INVALID"


def test_shipped_review_config():
    config = load_review_config()
    assert "team-management" in config["excluded_sections"]
    assert any(section["id"] == "engagement-scope" for section in config["sections"])


def test_db_path_from_environment(monkeypatch):
    monkeypatch.setenv("ENGAGEMENT_DB_PATH", "/tmp/other.db")
    assert default_db_path() == "/tmp/other.db"
    monkeypatch.delenv("ENGAGEMENT_DB_PATH")
    assert default_db_path() == "./engagement.db"


def test_credentials(credentials, monkeypatch, tmp_path):
    assert require_credentials() == credentials
    monkeypatch.setenv("GOOGLE_APPLICATION_CREDENTIALS", str(tmp_path / "missing.json"))
    with pytest.raises(EngagementError) as exc_info:
        require_credentials()
    assert exc_info.value.code == "CREDENTIALS_MISSING"
