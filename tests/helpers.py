from datetime import datetime, timezone
from uuid import uuid4

import anyio

from family_budget.models import Category, CategoryType


def make_category(
    name,
    *,
    parent=None,
    family_id=None,
    category_type=CategoryType.expense,
    is_active=True,
):
    now = datetime.now(timezone.utc)
    return Category(
        id=uuid4(),
        family_id=family_id or (parent.family_id if parent else uuid4()),
        name=name,
        type=category_type,
        color="#007BFF",
        icon="default",
        parent_id=parent.id if parent else None,
        is_active=is_active,
        created_at=now,
        updated_at=now,
    )


def pause_after(store, method_name, reached, *, delay=0.2):
    """Make ``store.<method_name>`` set ``reached`` and sleep before returning."""
    method = getattr(store, method_name)

    async def paused(*args, **kwargs):
        result = await method(*args, **kwargs)
        reached.set()
        await anyio.sleep(delay)
        return result

    setattr(store, method_name, paused)
