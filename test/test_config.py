import logging

import pytest

from bmlquery.config import load_settings
from bmlquery.logging_config import configure_logging


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("BMLQUERY_DATABASE_URL", "BMLQUERY_SCHEMA_FILE", "BMLQUERY_LOG_LEVEL",
                 "BMLQUERY_WORKERS", "BMLQUERY_STARTUP_CHECK"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = load_settings()

    assert settings.database_url == "sqlite:///bmlquery.db"
    assert settings.schema_file == "example/DBSchemaFile.cdm"
    assert settings.log_level == "INFO"
    assert settings.workers == 2
    assert settings.startup_check is True


def test_environment_overrides(clean_env):
    clean_env.setenv("BMLQUERY_DATABASE_URL", "sqlite:///other.db")
    clean_env.setenv("BMLQUERY_LOG_LEVEL", "debug")
    clean_env.setenv("BMLQUERY_WORKERS", "0")
    clean_env.setenv("BMLQUERY_STARTUP_CHECK", "0")

    settings = load_settings()

    assert settings.database_url == "sqlite:///other.db"
    assert settings.log_level == "DEBUG"
    assert settings.workers == 1
    assert settings.startup_check is False


def test_bad_worker_count(clean_env):
    clean_env.setenv("BMLQUERY_WORKERS", "many")
    with pytest.raises(RuntimeError):
        load_settings()


def test_configure_logging_is_idempotent():
    logger = logging.getLogger("bmlquery")
    saved = (logger.handlers[:], logger.level, logger.propagate)
    try:
        logger.handlers.clear()
        configure_logging("DEBUG")
        configure_logging("WARNING")

        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING
        assert logger.propagate is False
    finally:
        logger.handlers[:] = saved[0]
        logger.setLevel(saved[1])
        logger.propagate = saved[2]
