import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    database_url: str
    schema_file: str
    log_level: str
    workers: int
    startup_check: bool


def load_settings() -> Settings:
    """
    Читает .env (если есть) и переменные окружения BMLQUERY_*.
    Всё имеет значения по умолчанию: без .env приложение работает на локальном SQLite.
    """
    load_dotenv()

    raw_workers = os.getenv("BMLQUERY_WORKERS", "2").strip()
    try:
        workers = max(1, int(raw_workers))
    except ValueError:
        raise RuntimeError(f"BMLQUERY_WORKERS must be an integer, got {raw_workers!r}")

    return Settings(
        database_url=os.getenv("BMLQUERY_DATABASE_URL", "sqlite:///bmlquery.db"),
        schema_file=os.getenv("BMLQUERY_SCHEMA_FILE", "example/DBSchemaFile.cdm"),
        log_level=os.getenv("BMLQUERY_LOG_LEVEL", "INFO").upper(),
        workers=workers,
        startup_check=os.getenv("BMLQUERY_STARTUP_CHECK", "1") == "1",
    )
