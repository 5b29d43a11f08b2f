"""
boarbot.engine.items — Items Catalog Ordering
==============================================

The global items record keeps one entry per boar that has ever been
obtained.  Commands page through it in catalog order, so after every
config change the ``boars`` mapping is re-inserted in a deterministic
order: by rarity (as listed in the config), then by position inside that
rarity, with boars unknown to the config last, sorted by id.

Re-ordering is idempotent.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


def boar_sort_key(
    boar_id: str,
    rarities: Sequence[tuple[str, Sequence[str]]],
) -> tuple[int, int, str]:
    for rarity_index, (_, boar_ids) in enumerate(rarities):
        if boar_id in boar_ids:
            return (rarity_index, list(boar_ids).index(boar_id), boar_id)
    return (len(rarities), 0, boar_id)


def order_global_boars(
    items: dict[str, Any],
    rarities: Sequence[tuple[str, Sequence[str]]],
) -> dict[str, Any]:
    """Re-insert ``items["boars"]`` in catalog order.  Mutates and returns *items*."""
    boars: dict[str, Any] = items.get("boars") or {}
    ordered = sorted(boars, key=lambda boar_id: boar_sort_key(boar_id, rarities))
    items["boars"] = {boar_id: boars[boar_id] for boar_id in ordered}
    return items
