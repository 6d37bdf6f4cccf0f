from __future__ import annotations

import logging

import pytest

from contaflow.config import DEFAULT_EXPIRY_WINDOW_DAYS, DEFAULT_MAX_WORKERS, get_settings

ENV_VARS = (
    "MONGO_URI", "MONGO_DB", "MONGO_TLS", "CONTAFLOW_MAX_WORKERS",
    "CONTAFLOW_EXPIRY_WINDOW_DAYS", "CONTAFLOW_TZ", "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    s = get_settings()
    assert s.max_workers == DEFAULT_MAX_WORKERS
    assert s.expiry_window_days == DEFAULT_EXPIRY_WINDOW_DAYS
    assert s.timezone.key == "America/Sao_Paulo"
    assert s.mongo_tls is True
    assert s.log_level == logging.INFO


def test_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MONGO_DB", "escritorio")
    monkeypatch.setenv("MONGO_TLS", "false")
    monkeypatch.setenv("CONTAFLOW_MAX_WORKERS", "2")
    monkeypatch.setenv("CONTAFLOW_EXPIRY_WINDOW_DAYS", "0")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    s = get_settings()
    assert (s.mongo_db, s.mongo_tls, s.max_workers, s.expiry_window_days) == ("escritorio", False, 2, 0)
    assert s.log_level == logging.DEBUG


@pytest.mark.parametrize(
    "name, value",
    [
        ("CONTAFLOW_MAX_WORKERS", "0"),
        ("CONTAFLOW_MAX_WORKERS", "many"),
        ("CONTAFLOW_EXPIRY_WINDOW_DAYS", "-1"),
        ("CONTAFLOW_TZ", "Mars/Olympus"),
        ("LOG_LEVEL", "LOUD"),
        ("MONGO_TLS", "maybe"),
    ],
)
def test_invalid_values_raise(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(RuntimeError, match=name):
        get_settings()
