from pathlib import Path

import pytest

from concierge.config import Settings
from concierge.errors import ConfigurationError


def test_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    settings = Settings()

    assert settings.resolved_model == "openai:gpt-4o-mini"
    assert settings.tool_timeout_seconds == 15
    assert settings.response_timeout_seconds == 15
    assert settings.token_file == Path("token.json")
    assert settings.services_url is None


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CONCIERGE_MODEL", "openrouter:qwen/qwen3-coder")
    monkeypatch.setenv("CONCIERGE_TOOL_TIMEOUT_SECONDS", "3.5")
    monkeypatch.setenv("CONCIERGE_SERVICES_URL", "http://localhost:50051")

    settings = Settings()

    assert settings.resolved_model == "openrouter:qwen/qwen3-coder"
    assert settings.tool_timeout_seconds == 3.5
    assert settings.services_url == "http://localhost:50051"


def test_env_file_is_read(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text("CONCIERGE_PORT=9090\n", encoding="utf-8")

    assert Settings().port == 9090


@pytest.mark.parametrize("model", ["gpt-4o-mini", ":gpt-4o", "openai:", "  :  "])
def test_model_must_name_provider(model: str) -> None:
    with pytest.raises(ConfigurationError):
        _ = Settings(model=model).resolved_model
