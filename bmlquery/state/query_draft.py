from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple


class Operation(str, Enum):
    FIND = "find"
    CREATE = "create"
    UPDATE = "update"
    DELETE_ALL = "deleteAll"


class Condition(str, Enum):
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GE = "ge"
    LT = "lt"
    LE = "le"


class FilterField(str, Enum):
    """Какое поле фильтра редактируется (см. QueryBuilder.set_filter_field)."""
    ATTRIBUTE = "attribute"
    CONDITION = "condition"
    CONDITION_VALUE = "condition_value"


# значения для выпадающих списков UI
OPERATIONS: Tuple[str, ...] = tuple(op.value for op in Operation)
CONDITIONS: Tuple[str, ...] = tuple(c.value for c in Condition)


@dataclass(frozen=True)
class Filter:
    attribute: str = ""
    condition: Condition = Condition.EQ
    condition_value: str = ""

    def __post_init__(self):
        # принимаем и строковые токены ("gt"), и Condition.GT
        object.__setattr__(self, "condition", Condition(self.condition))

    @property
    def is_complete(self) -> bool:
        return bool(self.attribute)


@dataclass(frozen=True)
class QueryDraft:
    """
    Редактируемый структурированный запрос: операция, сущность, упорядоченные фильтры.
    entity == "" значит: сущность не выбрана. Фильтров всегда хотя бы один.
    """
    operation: Operation = Operation.FIND
    entity: str = ""
    filters: Tuple[Filter, ...] = field(default_factory=lambda: (Filter(),))

    def __post_init__(self):
        object.__setattr__(self, "operation", Operation(self.operation))
        object.__setattr__(self, "entity", self.entity or "")
        filters = tuple(self.filters)
        if not filters:
            raise ValueError("QueryDraft requires at least one filter")
        object.__setattr__(self, "filters", filters)

    @property
    def has_entity(self) -> bool:
        return bool(self.entity)


@dataclass(frozen=True)
class EntitySchema:
    name: str
    attributes: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "attributes", tuple(self.attributes))


@dataclass(frozen=True)
class GeneratedResult:
    text: str
    draft: QueryDraft


@dataclass(frozen=True)
class SavedQueryEntry:
    id: int
    name: str
    query_string: str = ""
