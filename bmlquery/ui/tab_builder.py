import tkinter as tk
from tkinter import ttk, simpledialog
from typing import Callable, List, Optional

from bmlquery.state.query_draft import CONDITIONS, OPERATIONS, FilterField, QueryDraft
from bmlquery.state.query_form import QueryForm


class _FilterRow:
    """Одна строка фильтра: атрибут, условие, значение, кнопка удаления."""

    def __init__(self, parent: ttk.Frame, index: int, form: QueryForm):
        self.index = index
        self.form = form
        self.frame = ttk.Frame(parent)
        self.frame.pack(fill="x", pady=2)

        self.var_attr = tk.StringVar(value="")
        self.var_cond = tk.StringVar(value="eq")
        self.var_value = tk.StringVar(value="")

        self.cmb_attr = ttk.Combobox(self.frame, textvariable=self.var_attr, state="readonly", width=22)
        self.cmb_attr.pack(side="left")
        self.cmb_attr.bind("<<ComboboxSelected>>", lambda e: self._push(FilterField.ATTRIBUTE, self.var_attr))

        cmb_cond = ttk.Combobox(self.frame, textvariable=self.var_cond, values=CONDITIONS,
                                state="readonly", width=6)
        cmb_cond.pack(side="left", padx=4)
        cmb_cond.bind("<<ComboboxSelected>>", lambda e: self._push(FilterField.CONDITION, self.var_cond))

        ent = ttk.Entry(self.frame, textvariable=self.var_value, width=28)
        ent.pack(side="left", padx=4)
        self.var_value.trace_add("write", lambda *_: self._push(FilterField.CONDITION_VALUE, self.var_value))

        self.btn_remove = ttk.Button(self.frame, text="×", width=3,
                                     command=lambda: self.form.builder.remove_filter(self.index))
        self.btn_remove.pack(side="left", padx=4)

    def show(self, draft: QueryDraft, attributes: List[str]):
        flt = draft.filters[self.index]
        self.cmb_attr["values"] = attributes
        # set() только при расхождении, иначе trace зациклится на ввод
        if self.var_attr.get() != flt.attribute:
            self.var_attr.set(flt.attribute)
        if self.var_cond.get() != flt.condition.value:
            self.var_cond.set(flt.condition.value)
        if self.var_value.get() != flt.condition_value:
            self.var_value.set(flt.condition_value)
        self.btn_remove.state(["!disabled"] if len(draft.filters) > 1 else ["disabled"])

    def _push(self, field: FilterField, var: tk.StringVar):
        current = self.form.builder.draft.filters[self.index]
        if getattr(current, field.value) != var.get():
            self.form.builder.set_filter_field(self.index, field, var.get())

    def destroy(self):
        self.frame.destroy()


class TabBuilder(ttk.Frame):
    """
    Вкладка 1: Конструктор запроса
    - операция и сущность
    - фильтры (атрибут / условие / значение)
    - Generate -> YAML, Save
    """

    def __init__(
        self,
        parent: ttk.Notebook,
        form: QueryForm,
        schema_file: str,
        ask_name: Optional[Callable[[str], Optional[str]]] = None,
    ):
        super().__init__(parent)
        self.form = form
        self.schema_file = schema_file
        self.ask_name = ask_name or (
            lambda initial: simpledialog.askstring("Save query", "Query name:", initialvalue=initial)
        )
        self._rows: List[_FilterRow] = []

        # верхняя панель
        top = ttk.Frame(self)
        top.pack(fill="x", padx=10, pady=8)

        ttk.Label(top, text="Function:").pack(side="left")
        self.var_op = tk.StringVar(value="find")
        cmb_op = ttk.Combobox(top, textvariable=self.var_op, values=OPERATIONS, state="readonly", width=12)
        cmb_op.pack(side="left", padx=6)
        cmb_op.bind("<<ComboboxSelected>>", lambda e: self.form.builder.set_operation(self.var_op.get()))

        ttk.Label(top, text="Model:").pack(side="left", padx=(16, 0))
        self.var_entity = tk.StringVar(value="")
        self.cmb_entity = ttk.Combobox(top, textvariable=self.var_entity, state="readonly", width=28)
        self.cmb_entity.pack(side="left", padx=6)
        self.cmb_entity.bind("<<ComboboxSelected>>", self._on_entity_selected)

        ttk.Button(top, text="Reload schema", command=lambda: self.form.reload_schema(self.schema_file)).pack(side="right")

        # фильтры
        where = ttk.Labelframe(self, text="Filters")
        where.pack(fill="x", padx=10, pady=8)
        self.rows_container = ttk.Frame(where)
        self.rows_container.pack(fill="x", padx=8, pady=8)
        ttk.Button(where, text="+ Add filter", command=self.form.builder.add_filter).pack(anchor="w", padx=8, pady=(0, 8))

        btns = ttk.Frame(self)
        btns.pack(fill="x", padx=10)
        self.btn_generate = ttk.Button(btns, text="Generate", command=self.form.submit)
        self.btn_generate.pack(side="left")
        ttk.Button(btns, text="Save", command=self._save_query).pack(side="left", padx=6)
        self.lbl_loaded = ttk.Label(btns, text="")
        self.lbl_loaded.pack(side="right")

        # YAML превью
        self.txt_result = tk.Text(self, height=12)
        self.txt_result.pack(fill="both", expand=True, padx=10, pady=8)

        self.form.builder.subscribe(self._on_draft)
        self.form.subscribe_result(self._on_result)
        self.form.library.subscribe(self._on_library)
        self._on_draft(self.form.builder.draft)

    # --- реакции на состояние ---

    def _on_draft(self, draft: QueryDraft):
        builder = self.form.builder
        entities = builder.entities
        self.cmb_entity["values"] = entities or ["(no entities)"]
        if self.var_op.get() != draft.operation.value:
            self.var_op.set(draft.operation.value)
        if self.var_entity.get() != draft.entity:
            self.var_entity.set(draft.entity)

        # структура поменялась -> пересобираем строки
        if len(self._rows) != len(draft.filters):
            for row in self._rows:
                row.destroy()
            self._rows = [_FilterRow(self.rows_container, i, self.form) for i in range(len(draft.filters))]

        attributes = list(builder.available_attributes)
        for row in self._rows:
            row.show(draft, attributes)

    def _on_result(self):
        self.txt_result.delete("1.0", "end")
        if self.form.generating:
            self.txt_result.insert("1.0", "# generating...")
        else:
            self.txt_result.insert("1.0", self.form.result_text)

    def _on_library(self):
        name = self.form.library.current_name
        self.lbl_loaded.configure(text=f"Loaded: {name}" if name else "")

    # --- действия ---

    def _on_entity_selected(self, _evt=None):
        name = self.var_entity.get()
        if name not in self.form.builder.entities:
            # заглушка "(no entities)"
            self.var_entity.set(self.form.builder.draft.entity)
            return
        self.form.builder.set_entity(name)

    def _save_query(self):
        name = self.ask_name(self.form.library.current_name)
        if name is None:
            return
        self.form.save(name)
