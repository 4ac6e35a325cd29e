from __future__ import annotations
import logging
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Tuple

from bmlquery.state.query_draft import (
    Condition,
    EntitySchema,
    Filter,
    FilterField,
    Operation,
    QueryDraft,
)

logger = logging.getLogger(__name__)

DraftListener = Callable[[QueryDraft], None]


class QueryBuilder:
    """
    Единственный владелец активного QueryDraft.
    Каждая операция заменяет часть черновика целиком и оповещает подписчиков;
    в сеть ничего не ходит, отправкой занимается QueryForm.
    """

    def __init__(self, entities: Iterable[EntitySchema] = ()):
        self._draft = QueryDraft()
        self._catalog: Dict[str, EntitySchema] = {}
        self._available: Tuple[str, ...] = ()
        self._listeners: List[DraftListener] = []
        self.version = 0
        self.set_catalog(entities)

    # --- чтение ---

    @property
    def draft(self) -> QueryDraft:
        return self._draft

    @property
    def available_attributes(self) -> Tuple[str, ...]:
        return self._available

    @property
    def entities(self) -> List[str]:
        return sorted(self._catalog)

    # --- подписка ---

    def subscribe(self, listener: DraftListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    # --- каталог ---

    def set_catalog(self, entities: Iterable[EntitySchema]) -> None:
        """Новый каталог сущностей; фильтры черновика не трогаем."""
        self._catalog = {e.name: e for e in entities}
        self._available = self._attributes_for(self._draft.entity)
        self._notify()

    # --- правки ---

    def set_operation(self, op: Operation | str) -> None:
        self._replace(replace(self._draft, operation=Operation(op)))

    def set_entity(self, name: str) -> None:
        name = name or ""
        if name and name not in self._catalog:
            raise ValueError(f"Unknown entity '{name}'")
        # смена сущности всегда сбрасывает фильтры, даже если имя то же
        self._available = self._attributes_for(name)
        self._replace(QueryDraft(operation=self._draft.operation, entity=name))

    def add_filter(self) -> None:
        self._replace(replace(self._draft, filters=self._draft.filters + (Filter(),)))

    def remove_filter(self, index: int) -> bool:
        filters = list(self._draft.filters)
        self._check_index(index, filters)
        if len(filters) <= 1:
            logger.debug("remove_filter(%d) ignored: the last filter stays", index)
            return False
        del filters[index]
        self._replace(replace(self._draft, filters=tuple(filters)))
        return True

    def set_filter_field(self, index: int, field: FilterField | str, value) -> None:
        filters = list(self._draft.filters)
        self._check_index(index, filters)
        setter = _SETTERS[FilterField(field)]
        filters[index] = setter(filters[index], value)
        self._replace(replace(self._draft, filters=tuple(filters)))

    def load_draft(self, draft: QueryDraft) -> None:
        """Полная замена черновика (после разбора сохранённого запроса)."""
        self._available = self._attributes_for(draft.entity)
        self._replace(draft)

    # --- internal ---

    def _attributes_for(self, entity: str) -> Tuple[str, ...]:
        schema = self._catalog.get(entity) if entity else None
        return schema.attributes if schema else ()

    @staticmethod
    def _check_index(index: int, filters: list) -> None:
        # отрицательные индексы тоже считаем ошибкой программиста
        if not 0 <= index < len(filters):
            raise IndexError(f"filter index {index} out of range (0..{len(filters) - 1})")

    def _replace(self, draft: QueryDraft) -> None:
        self._draft = draft
        self.version += 1
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._draft)


def _require_str(value) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected str, got {type(value).__name__}")
    return value


def _with_attribute(flt: Filter, value) -> Filter:
    return replace(flt, attribute=_require_str(value))


def _with_condition(flt: Filter, value) -> Filter:
    return replace(flt, condition=Condition(value))


def _with_condition_value(flt: Filter, value) -> Filter:
    return replace(flt, condition_value=_require_str(value))


_SETTERS = {
    FilterField.ATTRIBUTE: _with_attribute,
    FilterField.CONDITION: _with_condition,
    FilterField.CONDITION_VALUE: _with_condition_value,
}
