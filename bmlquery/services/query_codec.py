"""
Текстовое (YAML) представление запроса и обратный разбор.

Формат:

    #
    find:
      User:
      - age:
          gt: '18'
      - email:
          eq: a@b.com

Фильтры пишутся списком, чтобы порядок и повторяющиеся атрибуты переживали
цикл generate -> parse. parse() понимает и старую форму, где атрибуты лежат
в словаре: {User: {age: {gt: 18}}}.
"""
from __future__ import annotations
from typing import Any, List

import yaml

from bmlquery.errors import GenerationError, ParseError
from bmlquery.state.query_draft import Condition, Filter, Operation, QueryDraft

HEADER = "#"


def generate(draft: QueryDraft) -> str:
    if not draft.has_entity:
        raise GenerationError("Select an entity before generating a query")
    if not draft.filters:
        raise GenerationError("At least one filter is required")

    items = []
    for pos, flt in enumerate(draft.filters, start=1):
        if not flt.is_complete:
            raise GenerationError(f"Filter #{pos} has no attribute")
        items.append({flt.attribute: {flt.condition.value: flt.condition_value}})

    doc = {draft.operation.value: {draft.entity: items}}
    # без allow_unicode: не-ASCII экранируется в двойных кавычках,
    # иначе NBSP и юникодные переводы строк загрузчик съедает

    body = yaml.safe_dump(doc, sort_keys=False, default_flow_style=False)
    return f"{HEADER}\n{body}"


def parse(text: str) -> QueryDraft:
    body = (text or "").strip()
    if body.startswith(HEADER):
        body = body[len(HEADER):].strip()

    try:
        doc = yaml.safe_load(body)
    except yaml.YAMLError as e:
        raise ParseError(f"Failed to parse YAML: {e}") from e

    operation_name, models = _single_item(doc, "operation")
    try:
        operation = Operation(operation_name)
    except ValueError:
        raise ParseError(f"Unknown operation '{operation_name}'") from None

    entity, body_filters = _single_item(models, "entity")
    if not isinstance(entity, str) or not entity:
        raise ParseError("Entity name must be a non-empty string")

    if isinstance(body_filters, list):
        filters = _filters_from_list(body_filters)
    elif isinstance(body_filters, dict):
        filters = _filters_from_mapping(body_filters)
    else:
        raise ParseError(f"Filters of '{entity}' must be a list or a mapping")

    if not filters:
        raise ParseError(f"Query for '{entity}' has no filters")
    return QueryDraft(operation=operation, entity=entity, filters=tuple(filters))


# --- helpers ---

def _single_item(node: Any, what: str):
    if not isinstance(node, dict) or len(node) != 1:
        raise ParseError(f"Expected exactly one {what}")
    return next(iter(node.items()))


def _filters_from_list(items: list) -> List[Filter]:
    filters = []
    for pos, item in enumerate(items, start=1):
        if not isinstance(item, dict) or len(item) != 1:
            raise ParseError(f"Filter #{pos} must map one attribute to its condition")
        attribute, conditions = next(iter(item.items()))
        found = _filters_for_attribute(attribute, conditions)
        if len(found) != 1:
            raise ParseError(f"Filter #{pos} must hold exactly one condition")
        filters.extend(found)
    return filters


def _filters_from_mapping(mapping: dict) -> List[Filter]:
    filters = []
    for attribute, conditions in mapping.items():
        filters.extend(_filters_for_attribute(attribute, conditions))
    return filters


def _filters_for_attribute(attribute: Any, conditions: Any) -> List[Filter]:
    attribute = _scalar(attribute)
    if not attribute:
        raise ParseError("Filter attribute must not be empty")
    if not isinstance(conditions, dict) or not conditions:
        raise ParseError(f"Attribute '{attribute}' has no conditions")

    out = []
    for cond, value in conditions.items():
        try:
            condition = Condition(cond)
        except ValueError:
            raise ParseError(f"Unknown condition '{cond}' on '{attribute}'") from None
        out.append(Filter(attribute=attribute, condition=condition, condition_value=_scalar(value)))
    return out


def _scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        raise ParseError(f"Expected a scalar value, got {type(value).__name__}")
    return str(value)
