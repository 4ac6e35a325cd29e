import logging
import tkinter as tk
from tkinter import ttk, messagebox

from bmlquery.config import Settings, load_settings
from bmlquery.db.connections import get_engine, init_schema, test_connection
from bmlquery.logging_config import configure_logging
from bmlquery.repositories.meta_repository import MetaRepository
from bmlquery.repositories.query_repository import QueryRepository
from bmlquery.services.query_service import QueryService
from bmlquery.services.task_runner import TkTaskRunner
from bmlquery.state.query_form import QueryForm

# вкладки
from bmlquery.ui.tab_builder import TabBuilder
from bmlquery.ui.tab_library import TabLibrary

logger = logging.getLogger(__name__)


class App(tk.Tk):
    def __init__(self, service: QueryService, settings: Settings):
        super().__init__()
        self.title("BML Query Generator")
        self.geometry("960x640")

        # зависимости/сервисы
        self.runner = TkTaskRunner(self, max_workers=settings.workers)
        self.form = QueryForm(service, runner=self.runner, notify=self._notify)

        # Notebook
        self.nb = ttk.Notebook(self)
        self.nb.pack(fill="both", expand=True)

        self.tab_builder = TabBuilder(parent=self.nb, form=self.form, schema_file=settings.schema_file)
        self.nb.add(self.tab_builder, text="Query Builder")

        self.tab_lib = TabLibrary(
            parent=self.nb,
            form=self.form,
            on_loaded=lambda: self.nb.select(self.tab_builder),
        )
        self.nb.add(self.tab_lib, text="Saved Queries")

        # стартовая вкладка: конструктор
        self.nb.select(self.tab_builder)
        self.protocol("WM_DELETE_WINDOW", self._on_close)

        self.form.start()

    # --- callbacks wiring ---

    def _notify(self, level: str, title: str, message: str):
        if level == "error":
            messagebox.showerror(title, message)
        elif level == "warning":
            messagebox.showwarning(title, message)
        else:
            messagebox.showinfo(title, message)

    def _on_close(self):
        self.runner.shutdown()
        self.destroy()


def build_service(settings: Settings) -> QueryService:
    engine = get_engine(settings.database_url)
    if settings.startup_check and not test_connection(engine):
        raise RuntimeError(f"Can't connect to {settings.database_url}")
    init_schema(engine)
    return QueryService(meta_repo=MetaRepository(engine), query_repo=QueryRepository(engine))


def main():
    settings = load_settings()
    configure_logging(settings.log_level)
    service = build_service(settings)
    app = App(service, settings)
    app.mainloop()


if __name__ == "__main__":
    main()
