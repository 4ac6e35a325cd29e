import logging
import time
from typing import Dict

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    func,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

# кеш движков по URL
_engines: Dict[str, Engine] = {}

metadata = MetaData()

# модели из CDM-файла схемы (id из файла, имя выводится из значений атрибутов)
models = Table(
    "models", metadata,
    Column("id", String(255), primary_key=True),
    Column("name", String(255), nullable=False),
)

attributes = Table(
    "attributes", metadata,
    Column("id", String(255), primary_key=True),
    Column("model_id", String(255), ForeignKey("models.id")),
    Column("name", String(255), nullable=False),
    Column("original_key", Text),
)

# name не уникален: идентичность записи это id
saved_queries = Table(
    "saved_queries", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("query_string", Text, nullable=False),
    Column("created_at", DateTime, server_default=func.current_timestamp()),
    Column("updated_at", DateTime, server_default=func.current_timestamp()),
)


def get_engine(url: str) -> Engine:
    """
    Возвращает (или создаёт) SQLAlchemy Engine для URL.
    """
    if url in _engines:
        return _engines[url]

    logger.debug("creating engine for %s", url.split("@")[-1])
    engine = create_engine(
        url,
        echo=False,
        pool_pre_ping=True,  # пинг перед выдачей соединения из пула
    )
    _engines[url] = engine
    return engine


def init_schema(engine: Engine) -> None:
    """Создать таблицы models / attributes / saved_queries, если их ещё нет."""
    metadata.create_all(engine)


def test_connection(engine: Engine) -> bool:
    """
    Пинг базы: выполняет SELECT 1. Возвращает True/False.
    """
    try:
        t0 = time.perf_counter()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        dt = (time.perf_counter() - t0) * 1000
        logger.info("database OK (%.1f ms)", dt)
        return True
    except SQLAlchemyError as e:
        logger.error("database check failed: %s", e)
        return False
