# bmlquery/repositories/query_repository.py
from typing import List, Dict, Any
from sqlalchemy import text
from sqlalchemy.engine import Engine

from bmlquery.errors import NotFoundError


class QueryRepository:
    def __init__(self, engine: Engine):
        self.engine = engine

    def save_query(self, name: str, query_string: str) -> int:
        with self.engine.begin() as conn:
            new_id = conn.execute(
                text("""
                    INSERT INTO saved_queries (name, query_string)
                    VALUES (:n, :q)
                    RETURNING id
                """),
                {"n": name, "q": query_string},
            ).scalar_one()
        return int(new_id)

    def list_saved(self) -> List[Dict[str, Any]]:
        """Только id и имя: текст подгружается при открытии запроса."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                text("SELECT id, name FROM saved_queries ORDER BY name, id")
            ).mappings().all()
        return [dict(r) for r in rows]

    def get_saved(self, saved_id: int) -> Dict[str, Any]:
        with self.engine.connect() as conn:
            row = conn.execute(
                text("""
                    SELECT id, name, query_string, created_at
                    FROM saved_queries
                    WHERE id = :id
                """),
                {"id": saved_id},
            ).mappings().fetchone()
        if row is None:
            raise NotFoundError(f"Saved query {saved_id} not found")
        return dict(row)

    def delete_saved(self, saved_id: int) -> None:
        with self.engine.begin() as conn:
            res = conn.execute(text("DELETE FROM saved_queries WHERE id = :id"), {"id": saved_id})
        if res.rowcount == 0:
            raise NotFoundError(f"Saved query {saved_id} not found")
