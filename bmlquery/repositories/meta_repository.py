# bmlquery/repositories/meta_repository.py
from __future__ import annotations
import logging
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from sqlalchemy import text
from sqlalchemy.engine import Engine

from bmlquery.state.query_draft import EntitySchema

logger = logging.getLogger(__name__)

# значение-заглушка в CDM-файле: атрибут без ключа
NO_KEY = "$ncm"


def _model_name(attrs: Dict[str, str]) -> Optional[str]:
    """
    'Atomiton.DBA.ShapeFile.enterpriseId' -> 'ShapeFile'
    Берём первый атрибут, у которого есть хотя бы два сегмента.
    """
    for value in attrs.values():
        if value is None or value == NO_KEY:
            continue
        parts = str(value).split(".")
        if len(parts) >= 2:
            return parts[-2]
    return None


class MetaRepository:
    """
    Каталог сущностей: модели и их атрибуты.
    Наполняется из CDM-файла схемы, читается формой конструктора.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    # ---------- загрузка схемы ----------

    def load_schema_file(self, path: str | Path) -> int:
        """
        Читает CDM-файл (YAML: model_id -> {attr_id -> 'Vendor.Pkg.Model.attr' | '$ncm'})
        и upsert'ит модели и атрибуты. Возвращает число обработанных атрибутов.
        """
        data = Path(path).read_text(encoding="utf-8")
        schema = yaml.safe_load(data) or {}
        if not isinstance(schema, dict):
            raise ValueError(f"Schema file '{path}' must contain a mapping of models")

        count = 0
        with self.engine.begin() as conn:
            for model_id, attrs in schema.items():
                if not isinstance(attrs, dict):
                    logger.warning("model %s: attributes are not a mapping, skipped", model_id)
                    continue
                model_name = _model_name(attrs)
                if not model_name:
                    logger.warning("model %s: could not determine model name, skipped", model_id)
                    continue

                conn.execute(
                    text("""
                        INSERT INTO models (id, name)
                        VALUES (:id, :name)
                        ON CONFLICT (id) DO UPDATE SET name = excluded.name
                    """),
                    {"id": str(model_id), "name": model_name},
                )

                for attr_id, attr_value in attrs.items():
                    if attr_value is None or attr_value == NO_KEY:
                        continue
                    original_key = str(attr_value)
                    conn.execute(
                        text("""
                            INSERT INTO attributes (id, model_id, name, original_key)
                            VALUES (:id, :model_id, :name, :key)
                            ON CONFLICT (id) DO UPDATE SET
                                model_id = excluded.model_id,
                                name = excluded.name,
                                original_key = excluded.original_key
                        """),
                        {
                            "id": str(attr_id),
                            "model_id": str(model_id),
                            "name": original_key.split(".")[-1],
                            "key": original_key,
                        },
                    )
                    count += 1

        logger.info("schema %s loaded: %d attributes", path, count)
        return count

    # ---------- чтение для UI ----------

    def list_entities(self) -> List[EntitySchema]:
        """Сущности по имени; модели с одинаковым именем сливаются."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                text("""
                    SELECT m.name, a.name
                    FROM models m
                    JOIN attributes a ON a.model_id = m.id
                    ORDER BY m.name, a.name
                """)
            ).fetchall()

        by_name: Dict[str, List[str]] = {}
        for model_name, attr_name in rows:
            attrs = by_name.setdefault(model_name, [])
            if attr_name not in attrs:
                attrs.append(attr_name)
        return [EntitySchema(name, tuple(attrs)) for name, attrs in by_name.items()]
