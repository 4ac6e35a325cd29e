import tkinter as tk
from tkinter import ttk, messagebox
from typing import Optional

from bmlquery.state.query_draft import SavedQueryEntry
from bmlquery.state.query_form import QueryForm


class TabLibrary(ttk.Frame):
    """
    Вкладка 2: Saved queries
    - список сохранённых запросов (id, имя)
    - Load (разобрать в конструктор), Delete, Refresh
    """

    def __init__(self, parent: ttk.Notebook, form: QueryForm, on_loaded=None):
        super().__init__(parent)
        self.form = form
        self.on_loaded = on_loaded

        top = ttk.Frame(self)
        top.pack(fill="x", padx=10, pady=(10, 0))
        self.lbl_count = ttk.Label(top, text="Saved queries (0)")
        self.lbl_count.pack(side="left")
        self.lbl_current = ttk.Label(top, text="")
        self.lbl_current.pack(side="right")

        self.list_saved = tk.Listbox(self)
        self.list_saved.pack(fill="both", expand=True, padx=10, pady=10)
        self.list_saved.bind("<Double-Button-1>", lambda e: self._load_saved())

        btns = ttk.Frame(self)
        btns.pack(fill="x", padx=10, pady=(0, 10))
        ttk.Button(btns, text="Load", command=self._load_saved).pack(side="left")
        ttk.Button(btns, text="Delete", command=self._delete_saved).pack(side="left", padx=6)
        ttk.Button(btns, text="Refresh", command=self.form.library.refresh).pack(side="left", padx=6)

        self._cache = ()
        self.form.library.subscribe(self.refresh_list)
        self.refresh_list()

    # --- public ---

    def refresh_list(self):
        library = self.form.library
        self._cache = library.list_saved()
        self.list_saved.delete(0, "end")
        for q in self._cache:
            marker = "● " if q.id == library.current_id else ""
            self.list_saved.insert("end", f"{marker}{q.name}")
        self.lbl_count.configure(text=f"Saved queries ({len(self._cache)})")
        self.lbl_current.configure(text=f"Current: {library.current_name}" if library.current_name else "")

    # --- private ---

    def _selected(self) -> Optional[SavedQueryEntry]:
        sel = self.list_saved.curselection()
        return self._cache[sel[0]] if sel else None

    def _load_saved(self):
        q = self._selected()
        if q is None:
            messagebox.showwarning("Load", "Select a saved query.")
            return
        self.form.load(q.id)
        if self.on_loaded:
            self.on_loaded()

    def _delete_saved(self):
        q = self._selected()
        if q is None:
            return
        if messagebox.askyesno("Delete", f"Delete saved query '{q.name}'?"):
            self.form.delete(q.id)
