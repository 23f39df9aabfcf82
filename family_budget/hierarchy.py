"""In-process walks over a family's category tree.

Adapters load the active categories of one family; every traversal here works
on that snapshot, so the behaviour is identical whatever the backing store.
All walks are bounded by ``max_depth`` and never revisit a category.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from typing import Iterable, Mapping

from family_budget.errors import CategoryCycleError, CategoryDepthExceededError
from family_budget.models import Category, CategoryNode

logger = logging.getLogger(__name__)


def index_by_id(categories: Iterable[Category]) -> dict[uuid.UUID, Category]:
    return {category.id: category for category in categories}


def children_by_parent(
    categories: Iterable[Category],
) -> dict[uuid.UUID, list[Category]]:
    children: dict[uuid.UUID, list[Category]] = defaultdict(list)
    for category in categories:
        if category.parent_id is not None:
            children[category.parent_id].append(category)
    return children


def _node(category: Category, level: int) -> CategoryNode:
    return CategoryNode(
        id=category.id, name=category.name, type=category.type, level=level
    )


def subtree(
    anchor_id: uuid.UUID,
    categories: Iterable[Category],
    *,
    max_depth: int,
) -> list[CategoryNode]:
    """Return the anchor (level 0) and all its descendants, ordered by level then name.

    Descendants further than ``max_depth`` levels below the anchor are not
    returned. An anchor missing from ``categories`` yields an empty list.
    """
    categories = list(categories)
    by_id = index_by_id(categories)
    anchor = by_id.get(anchor_id)
    if anchor is None:
        return []

    children = children_by_parent(categories)
    nodes = [_node(anchor, 0)]
    seen = {anchor.id}
    frontier = [anchor]
    level = 0
    while frontier and level < max_depth:
        level += 1
        next_frontier = []
        for parent in frontier:
            for child in children.get(parent.id, ()):
                if child.id in seen:
                    continue
                seen.add(child.id)
                nodes.append(_node(child, level))
                next_frontier.append(child)
        frontier = next_frontier

    if frontier and any(children.get(category.id) for category in frontier):
        logger.warning(
            "Subtree of category %s truncated at depth %d", anchor_id, max_depth
        )

    nodes.sort(key=lambda node: (node.level, node.name))
    return nodes


def path_to_root(
    category_id: uuid.UUID,
    categories: Mapping[uuid.UUID, Category],
    *,
    max_depth: int,
) -> list[CategoryNode]:
    """Return the chain from the root down to ``category_id``, root first.

    ``level`` counts steps up from ``category_id``, so the root carries the
    highest level. The climb stops at a parent that is not in ``categories``,
    at a repeated category, or after ``max_depth`` steps.
    """
    current = categories.get(category_id)
    if current is None:
        return []

    chain = [_node(current, 0)]
    seen = {current.id}
    while current.parent_id is not None:
        parent = categories.get(current.parent_id)
        if parent is None:
            break
        if parent.id in seen or len(chain) > max_depth:
            logger.warning(
                "Path of category %s truncated after %d levels", category_id, len(chain)
            )
            break
        seen.add(parent.id)
        chain.append(_node(parent, len(chain)))
        current = parent

    chain.reverse()
    return chain


def ensure_no_cycle(
    category_id: uuid.UUID,
    new_parent_id: uuid.UUID,
    categories: Mapping[uuid.UUID, Category],
    *,
    max_depth: int,
) -> int:
    """Reject making ``new_parent_id`` the parent of ``category_id``.

    Walks parent links from the proposed parent toward the root. Raises
    ``CategoryCycleError`` when ``category_id`` is on that chain and
    ``CategoryDepthExceededError`` when the chain holds more than
    ``max_depth`` categories. A parent missing from ``categories`` ends the
    chain. Returns the depth ``category_id`` would have under the new parent.
    """
    depth = 0
    current_id: uuid.UUID | None = new_parent_id
    while current_id is not None:
        if current_id == category_id:
            logger.warning(
                "Rejected reparenting category %s under %s: circular reference",
                category_id,
                new_parent_id,
            )
            raise CategoryCycleError()
        if depth == max_depth:
            logger.warning(
                "Rejected reparenting category %s under %s: no root within %d levels",
                category_id,
                new_parent_id,
                max_depth,
            )
            raise CategoryDepthExceededError()
        current = categories.get(current_id)
        if current is None:
            break
        depth += 1
        current_id = current.parent_id
    return depth


def subtree_height(
    anchor_id: uuid.UUID,
    categories: Iterable[Category],
    *,
    max_depth: int,
) -> int:
    """Number of levels below ``anchor_id``; 0 for a leaf or unknown anchor."""
    nodes = subtree(anchor_id, categories, max_depth=max_depth)
    return max((node.level for node in nodes), default=0)
