import pytest

from issue_tracker.core.config import Settings


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("", []),
        ("http://localhost:5173", ["http://localhost:5173"]),
        ("http://a.test, http://b.test;http://c.test", ["http://a.test", "http://b.test", "http://c.test"]),
        ('["http://a.test", "http://b.test"]', ["http://a.test", "http://b.test"]),
    ],
)
def test_frontend_origins_parsing(raw, expected):
    assert Settings(FRONTEND_ORIGINS=raw).frontend_origins == expected


def test_database_url_from_environment(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///./other.db")
    assert Settings().database_url == "sqlite+aiosqlite:///./other.db"


def test_cors_enabled_only_with_origins(settings):
    from starlette.middleware.cors import CORSMiddleware

    from issue_tracker.main import create_app

    assert not any(m.cls is CORSMiddleware for m in create_app(settings).user_middleware)
    with_origins = settings.model_copy(update={"frontend_origins": ["http://localhost:5173"]})
    assert any(m.cls is CORSMiddleware for m in create_app(with_origins).user_middleware)


def test_log_level_applies_to_root_logger(settings):
    import logging

    from issue_tracker.core.logging import configure_logging
    from issue_tracker.main import create_app

    try:
        create_app(settings.model_copy(update={"log_level": "DEBUG"}))
        assert logging.getLogger().level == logging.DEBUG
        create_app(settings.model_copy(update={"log_level": "warning"}))
        assert logging.getLogger().level == logging.WARNING
    finally:
        configure_logging("INFO")
