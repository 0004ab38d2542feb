from __future__ import annotations

import json
import logging
from typing import Any, Iterable

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_NAMES = ("Cat", "Inspiration", "General")


class CategoryMap:
    """Bidirectional lookup between store-assigned category ids and display labels.

    Built once at startup from the categories table (or from configuration when the
    table is unreadable) and shared by every component that resolves categories.
    """

    def __init__(self, names_by_id: dict[int, str]) -> None:
        self._names_by_id = dict(sorted(names_by_id.items()))
        self._ids_by_name = {name.lower(): category_id for category_id, name in self._names_by_id.items()}

    @classmethod
    def from_rows(cls, rows: Iterable[dict[str, Any]]) -> CategoryMap:
        names_by_id: dict[int, str] = {}
        for row in rows:
            try:
                category_id = int(row["id"])
            except (KeyError, TypeError, ValueError):
                continue
            name = row.get("name")
            if isinstance(name, str) and name.strip():
                names_by_id[category_id] = name.strip()
        return cls(names_by_id)

    @classmethod
    def from_json(cls, raw: str | None) -> CategoryMap:
        if not raw:
            return cls({})
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("category map configuration is not valid JSON; using empty map")
            return cls({})
        if not isinstance(payload, dict):
            logger.warning("category map configuration must be a JSON object; using empty map")
            return cls({})
        return cls.from_rows({"id": key, "name": value} for key, value in payload.items())

    def __len__(self) -> int:
        return len(self._names_by_id)

    @property
    def names(self) -> list[str]:
        return list(self._names_by_id.values())

    @property
    def default_id(self) -> int | None:
        return next(iter(self._names_by_id), None)

    def resolve(self, value: int | str | None) -> int | str | None:
        """Resolve an id to its label, or a label (case-insensitive) to its id."""
        if value is None:
            return None
        if isinstance(value, int):
            return self._names_by_id.get(value)
        return self._ids_by_name.get(value.strip().lower())

    def name_for(self, category_id: Any) -> str | None:
        try:
            return self._names_by_id.get(int(category_id))
        except (TypeError, ValueError):
            return None

    def id_for(self, name: str | None) -> int | None:
        # Unmapped labels fall back to the first category rather than failing the write.
        if name:
            category_id = self.resolve(name)
            if isinstance(category_id, int):
                return category_id
        return self.default_id
