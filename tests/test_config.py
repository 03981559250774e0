from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from utils.config import load_settings
from utils.settings import CragConfig

BASE = """
app:
  name: crag-test
llm:
  model: gpt-4o-mini
  api_key: ${OPENAI_API_KEY}
  organization: ${OPENAI_ORG}
crag:
  max_retry_attempts: 2
  min_relevance_for_answer: 0.7
"""

PROD = """
crag:
  max_retry_attempts: 1
  llm_evaluation_enabled: true
"""


def _write_configs(tmp_path: Path) -> None:
    (tmp_path / "base.yaml").write_text(BASE, encoding="utf-8")
    (tmp_path / "prod.yaml").write_text(PROD, encoding="utf-8")


def test_defaults_match_documented_configuration() -> None:
    cfg = CragConfig()
    assert cfg.enabled is True
    assert cfg.query_expansion_enabled is True
    assert cfg.knowledge_refinement_enabled is True
    assert cfg.max_retry_attempts == 2
    assert cfg.min_relevance_for_answer == 0.7
    assert cfg.llm_evaluation_enabled is False
    assert cfg.high_confidence_threshold == 0.8
    assert cfg.low_confidence_threshold == 0.5
    assert cfg.score_gap_threshold == 0.15


def test_crag_config_is_frozen() -> None:
    cfg = CragConfig()
    with pytest.raises(ValidationError):
        cfg.enabled = False


@pytest.mark.parametrize(
    "overrides",
    [
        {"low_confidence_threshold": 0.9, "high_confidence_threshold": 0.8},
        {"max_retry_attempts": -1},
        {"min_relevance_for_answer": 1.5},
    ],
)
def test_invalid_crag_config_is_rejected(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        CragConfig(**overrides)


def test_load_settings_merges_env_override(tmp_path: Path, monkeypatch) -> None:
    _write_configs(tmp_path)
    monkeypatch.setenv("CRAG_CONFIG_DIR", str(tmp_path))
    monkeypatch.setenv("CRAG_ENV", "prod")

    settings = load_settings()

    assert settings.app.name == "crag-test"
    assert settings.crag.max_retry_attempts == 1
    assert settings.crag.llm_evaluation_enabled is True
    assert settings.crag.min_relevance_for_answer == 0.7
    assert settings.llm.api_key == "test"
    assert settings.llm.organization is None


def test_load_settings_without_env_file_uses_base(tmp_path: Path, monkeypatch) -> None:
    _write_configs(tmp_path)
    monkeypatch.setenv("CRAG_CONFIG_DIR", str(tmp_path))

    settings = load_settings()

    assert settings.crag.max_retry_attempts == 2
    assert settings.crag.llm_evaluation_enabled is False


def test_missing_base_config_raises(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("CRAG_CONFIG_DIR", str(tmp_path))
    with pytest.raises(FileNotFoundError):
        load_settings()


def test_shipped_configs_load(monkeypatch) -> None:
    repo_configs = Path(__file__).resolve().parents[1] / "configs"
    monkeypatch.setenv("CRAG_CONFIG_DIR", str(repo_configs))
    settings = load_settings()
    assert settings.app.log_level == "DEBUG"
    assert settings.llm.base_url == "http://localhost:9999/v1"
