import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import List

import yaml
from sqlalchemy.exc import SQLAlchemyError

from bmlquery.errors import CollaboratorError
from bmlquery.repositories.meta_repository import MetaRepository
from bmlquery.repositories.query_repository import QueryRepository
from bmlquery.services import query_codec
from bmlquery.state.query_draft import EntitySchema, QueryDraft, SavedQueryEntry

logger = logging.getLogger(__name__)


@contextmanager
def _call(name: str):
    """
    Замер времени и перевод ошибок хранилища в CollaboratorError.
    NotFound / Generation / Parse уже CollaboratorError и проходят как есть.
    """
    t0 = time.perf_counter()
    try:
        yield
    except CollaboratorError as e:
        logger.warning("%s failed: %s", name, e)
        raise
    except (SQLAlchemyError, OSError, yaml.YAMLError, ValueError) as e:
        logger.error("%s failed: %s", name, e)
        raise CollaboratorError(f"{name} failed: {e}") from e
    finally:
        dt = round((time.perf_counter() - t0) * 1000)
        logger.debug("%s took %d ms", name, dt)


class QueryService:
    """
    Коллабораторы формы: каталог сущностей, генератор/парсер и хранилище запросов.
    Вызывается из фоновых задач, состояние формы не трогает.
    """

    def __init__(self, meta_repo: MetaRepository, query_repo: QueryRepository):
        self.meta_repo = meta_repo
        self.query_repo = query_repo

    # --- каталог ---

    def list_entities(self) -> List[EntitySchema]:
        with _call("list_entities"):
            return self.meta_repo.list_entities()

    def load_schema(self, path: str | Path) -> int:
        with _call("load_schema"):
            return self.meta_repo.load_schema_file(path)

    # --- generate / parse ---

    def generate(self, draft: QueryDraft) -> str:
        with _call("generate"):
            return query_codec.generate(draft)

    def parse(self, query_string: str) -> QueryDraft:
        with _call("parse"):
            return query_codec.parse(query_string)

    # --- сохранённые запросы ---

    def list_saved(self) -> List[SavedQueryEntry]:
        with _call("list_saved"):
            rows = self.query_repo.list_saved()
        return [SavedQueryEntry(id=int(r["id"]), name=r["name"]) for r in rows]

    def create_saved(self, name: str, query_string: str) -> int:
        with _call("create_saved"):
            saved_id = self.query_repo.save_query(name, query_string)
        logger.info("saved query '%s' as id=%d", name, saved_id)
        return saved_id

    def get_saved(self, saved_id: int) -> SavedQueryEntry:
        with _call("get_saved"):
            row = self.query_repo.get_saved(saved_id)
        return SavedQueryEntry(id=int(row["id"]), name=row["name"], query_string=row["query_string"])

    def delete_saved(self, saved_id: int) -> None:
        with _call("delete_saved"):
            self.query_repo.delete_saved(saved_id)
        logger.info("deleted saved query id=%d", saved_id)
