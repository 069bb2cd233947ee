"""Mapping catalogue queries used by the data-entry screens."""

from __future__ import annotations

from typing import Optional

from qi_backend.mappings.schema import MappingDefinition
from qi_backend.services.pagination import Page, paginate
from qi_backend.store import InMemoryStore


def search_mappings(
    store: InMemoryStore,
    page: int = 1,
    limit: int = 100,
    search: Optional[str] = None,
    only_active: bool = False,
) -> Page[MappingDefinition]:
    """Filter by viroc id or name (case-insensitive) and paginate."""
    mappings = store.list_mappings()
    if only_active:
        mappings = [m for m in mappings if m.is_active]
    if search:
        term = search.strip().lower()
        mappings = [
            m for m in mappings
            if term in m.viroc_id.lower() or term in m.name.lower()
        ]
    return paginate(mappings, page, limit)


def department_summaries(store: InMemoryStore) -> list[dict]:
    counts = store.count_submissions_by_department()
    return [
        {"id": d.id, "name": d.name, "submission_count": counts.get(d.id, 0)}
        for d in store.list_departments()
    ]
