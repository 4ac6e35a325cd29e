from typing import Dict, List

import pytest
from sqlalchemy import create_engine

from bmlquery.db.connections import init_schema
from bmlquery.errors import CollaboratorError, NotFoundError
from bmlquery.repositories.meta_repository import MetaRepository
from bmlquery.repositories.query_repository import QueryRepository
from bmlquery.services import query_codec
from bmlquery.services.query_service import QueryService
from bmlquery.state.query_builder_state import QueryBuilder
from bmlquery.state.query_draft import EntitySchema, QueryDraft, SavedQueryEntry

SCHEMA_CDM = """\
M001:
  A001: Atomiton.DBA.User.id
  A002: Atomiton.DBA.User.email
  A003: Atomiton.DBA.User.age
  A004: $ncm
M002:
  A101: Atomiton.DBA.ShapeFile.enterpriseId
  A102: Atomiton.DBA.ShapeFile.fileName
M003:
  A201: $ncm
"""


class NotificationRecorder:
    """Собирает уведомления вместо messagebox."""

    def __init__(self):
        self.items: List[tuple] = []

    def __call__(self, level: str, title: str, message: str):
        self.items.append((level, title, message))

    @property
    def errors(self) -> List[tuple]:
        return [n for n in self.items if n[0] == "error"]


class DeferredRunner:
    """Откладывает задачи до run_all(): имитирует запрос "в полёте"."""

    def __init__(self):
        self.pending = []

    def submit(self, work, on_success, on_failure):
        self.pending.append((work, on_success, on_failure))

    def run_all(self):
        pending, self.pending = self.pending, []
        for work, on_success, on_failure in pending:
            try:
                result = work()
            except Exception as e:
                on_failure(e)
            else:
                on_success(result)


class FakeService:
    """
    Коллабораторы в памяти. calls: журнал вызовов,
    failing: имена методов, которые должны падать с CollaboratorError.
    """

    def __init__(self, entities=()):
        self.entities = list(entities)
        self.saved: Dict[int, SavedQueryEntry] = {}
        self.next_id = 1
        self.calls: List[str] = []
        self.failing = set()

    def _enter(self, name: str):
        self.calls.append(name)
        if name in self.failing:
            raise CollaboratorError(f"{name} is unavailable")

    def list_entities(self):
        self._enter("list_entities")
        return list(self.entities)

    def load_schema(self, path):
        self._enter("load_schema")
        return 0

    def generate(self, draft: QueryDraft) -> str:
        self._enter("generate")
        return query_codec.generate(draft)

    def parse(self, query_string: str) -> QueryDraft:
        self._enter("parse")
        return query_codec.parse(query_string)

    def list_saved(self):
        self._enter("list_saved")
        return [SavedQueryEntry(id=e.id, name=e.name) for e in sorted(self.saved.values(), key=lambda e: (e.name, e.id))]

    def create_saved(self, name: str, query_string: str) -> int:
        self._enter("create_saved")
        saved_id = self.next_id
        self.next_id += 1
        self.saved[saved_id] = SavedQueryEntry(id=saved_id, name=name, query_string=query_string)
        return saved_id

    def get_saved(self, saved_id: int) -> SavedQueryEntry:
        self._enter("get_saved")
        if saved_id not in self.saved:
            raise NotFoundError(f"Saved query {saved_id} not found")
        return self.saved[saved_id]

    def delete_saved(self, saved_id: int) -> None:
        self._enter("delete_saved")
        if saved_id not in self.saved:
            raise NotFoundError(f"Saved query {saved_id} not found")
        del self.saved[saved_id]


@pytest.fixture
def catalog():
    return [
        EntitySchema("ShapeFile", ("enterpriseId", "fileName")),
        EntitySchema("User", ("age", "email", "id")),
    ]


@pytest.fixture
def builder(catalog):
    return QueryBuilder(catalog)


@pytest.fixture
def notifications():
    return NotificationRecorder()


@pytest.fixture
def fake_service(catalog):
    return FakeService(catalog)


@pytest.fixture
def schema_file(tmp_path):
    path = tmp_path / "DBSchemaFile.cdm"
    path.write_text(SCHEMA_CDM, encoding="utf-8")
    return path


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(f"sqlite:///{tmp_path / 'bmlquery.db'}")
    init_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def service(engine):
    return QueryService(meta_repo=MetaRepository(engine), query_repo=QueryRepository(engine))
