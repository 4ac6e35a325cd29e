from __future__ import annotations
import logging
from pathlib import Path
from typing import Callable, List, Optional

from bmlquery.services.query_service import QueryService
from bmlquery.services.task_runner import ImmediateRunner, TaskRunner
from bmlquery.state.query_builder_state import QueryBuilder
from bmlquery.state.query_draft import GeneratedResult, QueryDraft, SavedQueryEntry
from bmlquery.state.saved_query_library import Notifier, SavedQueryLibrary, log_notifier

logger = logging.getLogger(__name__)


class QueryForm:
    """
    Граница действий формы: submit / save / load / delete / каталог.
    Все ошибки коллабораторов превращаются в уведомления, наружу не летят.
    """

    def __init__(
        self,
        service: QueryService,
        runner: Optional[TaskRunner] = None,
        notify: Optional[Notifier] = None,
        builder: Optional[QueryBuilder] = None,
    ):
        self.service = service
        self.runner = runner or ImmediateRunner()
        self.notify = notify or log_notifier
        self.builder = builder or QueryBuilder()
        self.library = SavedQueryLibrary(service, self.builder, self.runner, self.notify)

        self.result: Optional[GeneratedResult] = None
        self.generating = False
        self._submit_token = 0
        self._listeners: List[Callable[[], None]] = []

    @property
    def result_text(self) -> str:
        return self.result.text if self.result else ""

    def subscribe_result(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    # --- actions ---

    def start(self) -> None:
        """Начало сеанса: каталог сущностей и список сохранённых запросов."""
        self.refresh_catalog()
        self.library.refresh()

    def refresh_catalog(self) -> None:
        def on_failure(e: Exception):
            # пустой каталог: форма показывает "no entities"
            self.builder.set_catalog(())
            self.notify("error", "Entities", f"Failed to fetch entities: {e}")

        self.runner.submit(self.service.list_entities, self.builder.set_catalog, on_failure)

    def reload_schema(self, path: str | Path) -> None:
        def work():
            count = self.service.load_schema(path)
            return count, self.service.list_entities()

        def on_loaded(result):
            count, entities = result
            self.builder.set_catalog(entities)
            self.notify("info", "Schema", f"Successfully loaded schema. Processed {count} attributes.")

        self.runner.submit(
            work,
            on_loaded,
            lambda e: self.notify("error", "Schema", f"Failed to load schema: {e}"),
        )

    def submit(self) -> None:
        self._submit_token += 1
        token = self._submit_token
        draft = self.builder.draft
        version = self.builder.version

        self.result = None
        self.generating = True
        self._changed()

        def is_current() -> bool:
            return token == self._submit_token and version == self.builder.version

        def on_generated(text: str):
            if token == self._submit_token:
                self.generating = False
            if not is_current():
                logger.info("discarding stale generate result (draft changed)")
                self._changed()
                return
            self.result = GeneratedResult(text=text, draft=draft)
            self._changed()

        def on_failure(e: Exception):
            if token != self._submit_token:
                return
            self.generating = False
            self._changed()
            self.notify("error", "Error", f"Failed to generate query: {e}")

        self.runner.submit(lambda: self.service.generate(draft), on_generated, on_failure)

    def save(self, name: str) -> bool:
        return self.library.save(name, self.result_text)

    def load(self, saved_id: int) -> None:
        def show_loaded(entry: SavedQueryEntry, draft: QueryDraft):
            # загруженный текст сразу виден как результат
            self.result = GeneratedResult(text=entry.query_string, draft=draft)
            self._changed()

        self.library.load(saved_id, on_loaded=show_loaded)

    def delete(self, saved_id: int) -> None:
        self.library.delete(saved_id)

    # --- internal ---

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener()
