"""Tests for configuration loading."""

import pytest

from adaptflow.collaborators import HttpCollaborator, InMemoryCollaborator, get_collaborator
from adaptflow.config import AdaptflowConfig, load_config
from adaptflow.persistence import (
    InMemoryExecutionRepository,
    SQLiteExecutionRepository,
    get_repository,
)


def _clear_env(monkeypatch):
    for name in (
        "ADAPTFLOW_DATABASE_URL",
        "DATABASE_URL",
        "ADAPTFLOW_FUNCTIONS_URL",
        "ADAPTFLOW_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_file(tmp_path, monkeypatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("ADAPTFLOW_CONFIG", str(tmp_path / "missing.yaml"))

    config = load_config()

    assert config.collaborator.backend == "inmemory"
    assert config.history.limit == 100
    assert config.learning.min_executions_for_config == 10
    assert config.learning.min_executions_for_optimization == 20
    assert config.retry.base_delay_seconds == 1.0
    assert config.database_url is None


def test_load_config_from_env(tmp_path, monkeypatch):
    _clear_env(monkeypatch)
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
collaborator:
  backend: http
  base_url: https://functions.example.com
  endpoints:
    extract: /v2/extract
database_url: sqlite:///tmp/history.db
history:
  limit: 50
learning:
  min_executions_for_optimization: 40
"""
    )
    monkeypatch.setenv("ADAPTFLOW_CONFIG", str(config_path))

    config = load_config()
    assert config.collaborator.backend == "http"
    assert config.collaborator.base_url == "https://functions.example.com"
    assert config.collaborator.endpoints.extract == "/v2/extract"
    assert config.collaborator.endpoints.summarize == "/functions/v1/summarization-executor"
    assert config.database_url == "sqlite:///tmp/history.db"
    assert config.history.limit == 50
    assert config.learning.min_executions_for_optimization == 40


def test_environment_overrides(tmp_path, monkeypatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("ADAPTFLOW_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.setenv("ADAPTFLOW_DATABASE_URL", "sqlite://override.db")
    monkeypatch.setenv("ADAPTFLOW_FUNCTIONS_URL", "https://fn.example.com")
    monkeypatch.setenv("ADAPTFLOW_API_KEY", "secret")

    config = load_config()

    assert config.database_url == "sqlite://override.db"
    assert config.collaborator.backend == "http"
    assert config.collaborator.base_url == "https://fn.example.com"
    assert config.collaborator.api_key == "secret"


def test_defaults_are_not_shared():
    first = AdaptflowConfig()
    first.collaborator.headers["X-Test"] = "1"

    assert AdaptflowConfig().collaborator.headers == {}


def test_factories_use_config(tmp_path, monkeypatch):
    _clear_env(monkeypatch)
    config = AdaptflowConfig()

    assert isinstance(get_collaborator(config=config), InMemoryCollaborator)
    assert isinstance(get_repository(config=config), InMemoryExecutionRepository)

    config.collaborator.backend = "http"
    config.database_url = f"sqlite://{tmp_path / 'history.db'}"
    collaborator = get_collaborator(config=config)
    assert isinstance(collaborator, HttpCollaborator)
    assert collaborator.base_url == "http://localhost:54321"
    repo = get_repository(config=config)
    assert isinstance(repo, SQLiteExecutionRepository)
    repo.close()


def test_unsupported_backends_rejected():
    with pytest.raises(ValueError):
        get_repository("mysql://localhost/db")
    with pytest.raises(ValueError):
        get_collaborator("grpc", config=AdaptflowConfig())
