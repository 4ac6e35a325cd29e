from __future__ import annotations
import logging
from typing import Callable, List, Optional, Tuple

from bmlquery.errors import NotFoundError, QueryValidationError
from bmlquery.services.query_service import QueryService
from bmlquery.services.task_runner import ImmediateRunner, TaskRunner
from bmlquery.state.query_builder_state import QueryBuilder
from bmlquery.state.query_draft import QueryDraft, SavedQueryEntry

logger = logging.getLogger(__name__)

# notify(level, title, message); level: "info" | "warning" | "error"
Notifier = Callable[[str, str, str], None]


def log_notifier(level: str, title: str, message: str) -> None:
    """Уведомления в лог, если UI не подключён."""
    logger.log(_LEVELS.get(level, logging.INFO), "%s: %s", title, message)


_LEVELS = {"info": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}


class SavedQueryLibrary:
    """
    Кеш списка сохранённых запросов + жизненный цикл записи:
    save (создать), load (разобрать в черновик), delete.
    Сами записи живут в хранилище; здесь только {id, name} для отображения
    и пометка "сейчас загружен".
    """

    def __init__(
        self,
        service: QueryService,
        builder: QueryBuilder,
        runner: Optional[TaskRunner] = None,
        notify: Optional[Notifier] = None,
    ):
        self.service = service
        self.builder = builder
        self.runner = runner or ImmediateRunner()
        self.notify = notify or log_notifier

        self._entries: Tuple[SavedQueryEntry, ...] = ()
        self.current_id: Optional[int] = None
        self.current_name = ""
        self._listeners: List[Callable[[], None]] = []
        self._load_token = 0

    # --- public ---

    def list_saved(self) -> Tuple[SavedQueryEntry, ...]:
        return self._entries

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def refresh(self) -> None:
        self.runner.submit(
            self.service.list_saved,
            self._apply_entries,
            lambda e: self.notify("error", "Saved queries", f"Failed to load saved queries: {e}"),
        )

    def save(self, name: str, text: str) -> bool:
        """False: ввод не прошёл проверку, хранилище не вызывалось."""
        name = (name or "").strip()
        try:
            _check_save(name, text)
        except QueryValidationError as e:
            self.notify("error", "Save query", str(e))
            return False

        def on_saved(saved_id: int):
            self.current_id = saved_id
            self.current_name = name
            self.notify("info", "Saved", f"Saved as '{name}' (id={saved_id})")
            self._changed()
            self.refresh()

        self.runner.submit(
            lambda: self.service.create_saved(name, text),
            on_saved,
            lambda e: self.notify("error", "Save error", str(e)),
        )
        return True

    def load(
        self,
        saved_id: int,
        on_loaded: Optional[Callable[[SavedQueryEntry, QueryDraft], None]] = None,
    ) -> None:
        self._load_token += 1
        token = self._load_token
        version = self.builder.version

        def fetch() -> Tuple[SavedQueryEntry, QueryDraft]:
            entry = self.service.get_saved(saved_id)
            return entry, self.service.parse(entry.query_string)

        def apply(result: Tuple[SavedQueryEntry, QueryDraft]):
            if token != self._load_token:
                logger.info("discarding superseded load of saved query id=%s", saved_id)
                return
            if version != self.builder.version:
                self.notify("warning", "Load", "The query was edited while loading. Load it again to replace it.")
                return
            entry, draft = result
            self.builder.load_draft(draft)
            self.current_id = entry.id
            self.current_name = entry.name
            if on_loaded is not None:
                on_loaded(entry, draft)
            self._changed()

        self.runner.submit(fetch, apply, lambda e: self._failed("Load error", e))

    def delete(self, saved_id: int) -> None:
        def on_deleted(_):
            self._entries = tuple(e for e in self._entries if e.id != saved_id)
            if self.current_id == saved_id:
                # черновик не откатываем: он уже не зависит от библиотеки
                self.current_id = None
                self.current_name = ""
            self._changed()
            self.refresh()

        self.runner.submit(
            lambda: self.service.delete_saved(saved_id),
            on_deleted,
            lambda e: self._failed("Delete error", e),
        )

    # --- internal ---

    def _apply_entries(self, entries: List[SavedQueryEntry]) -> None:
        self._entries = tuple(entries)
        self._changed()

    def _failed(self, title: str, exc: Exception) -> None:
        self.notify("error", title, str(exc))
        if isinstance(exc, NotFoundError):
            # запись удалили из другого сеанса: сверим список
            self.refresh()

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener()


def _check_save(name: str, text: str) -> None:
    if not name:
        raise QueryValidationError("Please enter a query name")
    if not text:
        raise QueryValidationError("No query to save. Generate a query first.")
