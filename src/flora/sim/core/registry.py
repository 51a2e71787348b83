from __future__ import annotations

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, Iterator, List, Tuple

logger = logging.getLogger(__name__)


class Category(str, Enum):
    MOVER = "Mover"
    AGENT = "Agent"
    LIQUID = "Liquid"
    ATTRACTOR = "Attractor"
    REPELLER = "Repeller"
    HEAT = "Heat"
    COLD = "Cold"

    @classmethod
    def parse(cls, name: "Category | str") -> "Category":
        if isinstance(name, Category):
            return name
        try:
            return cls(name)
        except ValueError:
            known = ", ".join(member.value for member in cls)
            raise ValueError(f"Unknown entity category {name!r} (expected one of: {known})") from None


class EntityRegistry:
    """
    Live entities partitioned by category.

    Membership may only change between ticks. While `frozen()` is active,
    `add`/`remove` raise; use `defer_add`/`defer_remove` and `flush` at the
    tick boundary instead. Entity ids must be unique among live entities.
    """

    def __init__(self) -> None:
        self._lists: Dict[Category, List[Any]] = {category: [] for category in Category}
        self._by_id: Dict[int, Any] = {}
        self._membership: Dict[int, List[Category]] = {}
        self._pending_add: List[Tuple[Any, Category]] = []
        self._pending_remove: List[Any] = []
        self._frozen = False

    def __len__(self) -> int:
        return len(self._membership)

    def __contains__(self, entity: Any) -> bool:
        return self._by_id.get(entity.id) is entity

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def add(self, entity: Any, category: Category | str) -> None:
        self._ensure_mutable("add")
        cat = Category.parse(category)
        current = self._by_id.get(entity.id)
        if current is not None and current is not entity:
            raise ValueError(f"Entity id {entity.id} is already registered to a different entity")
        self._by_id[entity.id] = entity
        categories = self._membership.setdefault(entity.id, [])
        if cat in categories:
            return
        categories.append(cat)
        self._lists[cat].append(entity)

    def remove(self, entity: Any) -> None:
        self._ensure_mutable("remove")
        if entity not in self:
            raise KeyError(f"Entity {entity.id} is not registered")
        del self._by_id[entity.id]
        for cat in self._membership.pop(entity.id):
            bucket = self._lists[cat]
            bucket[:] = [item for item in bucket if item is not entity]

    def list_by_category(self, name: Category | str) -> List[Any]:
        return self._lists[Category.parse(name)]

    def categories_of(self, entity: Any) -> List[Category]:
        if entity not in self:
            return []
        return list(self._membership[entity.id])

    def entities(self) -> Iterator[Any]:
        return iter(list(self._by_id.values()))

    def clear(self) -> None:
        self._ensure_mutable("clear")
        for bucket in self._lists.values():
            bucket.clear()
        self._by_id.clear()
        self._membership.clear()
        self._pending_add.clear()
        self._pending_remove.clear()

    def defer_add(self, entity: Any, category: Category | str) -> None:
        self._pending_add.append((entity, Category.parse(category)))

    def defer_remove(self, entity: Any) -> None:
        # A removal cancels any spawn of the same entity still waiting for the boundary.
        pending = [item for item in self._pending_add if item[0] is not entity]
        cancelled = len(pending) != len(self._pending_add)
        self._pending_add = pending
        if cancelled and entity not in self:
            return
        self._pending_remove.append(entity)

    def flush(self) -> Tuple[int, int]:
        self._ensure_mutable("flush")
        added = 0
        removed = 0
        for entity in self._pending_remove:
            if entity in self:
                self.remove(entity)
                removed += 1
        for entity, category in self._pending_add:
            self.add(entity, category)
            added += 1
        self._pending_add.clear()
        self._pending_remove.clear()
        if (added or removed) and logger.isEnabledFor(logging.DEBUG):
            logger.debug("Registry flush: %d added, %d removed, %d live", added, removed, len(self))
        return added, removed

    @contextmanager
    def frozen(self) -> Iterator["EntityRegistry"]:
        previous = self._frozen
        self._frozen = True
        try:
            yield self
        finally:
            self._frozen = previous

    def _ensure_mutable(self, operation: str) -> None:
        if self._frozen:
            raise RuntimeError(f"Cannot {operation} registry entities mid-tick; defer the change to the tick boundary")
