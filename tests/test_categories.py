from uuid import UUID, uuid4

import anyio
import pytest
from sqlalchemy import select

from family_budget.config import Settings
from family_budget.data_access import CategoriesDataAccess, FamiliesDataAccess
from family_budget.db import get_session_scope
from family_budget.errors import (
    CategoryCycleError,
    CategoryError,
    ParentCategoryInactiveError,
)
from family_budget.services import CategoriesService
from family_budget.tables import CategoriesTable
from tests.helpers import pause_after

pytestmark = pytest.mark.anyio

SETTINGS = Settings(CATEGORY_MAX_DEPTH=10)


async def create_family(async_client, **payload) -> str:
    response = await async_client.post(
        "/families", json={"name": f"Family-{uuid4()}", **payload}
    )
    assert response.status_code == 201
    return response.json()["id"]


async def create_category(
    async_client, family_id: str, name: str, *, type: str = "expense", **payload
) -> dict:
    response = await async_client.post(
        f"/families/{family_id}/categories",
        json={"name": name, "type": type, **payload},
    )
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_category(async_client) -> None:
    family_id = await create_family(async_client)

    response = await async_client.post(
        f"/families/{family_id}/categories",
        json={"name": "Groceries", "type": "expense"},
    )

    assert response.status_code == 201
    payload = response.json()
    assert payload["family_id"] == family_id
    assert payload["name"] == "Groceries"
    assert payload["type"] == "expense"
    assert payload["color"] == "#007BFF"
    assert payload["icon"] == "default"
    assert payload["parent_id"] is None
    assert payload["is_active"] is True
    assert payload["created_at"] is not None
    assert payload["updated_at"] is not None


async def test_category_persists_in_db(async_client) -> None:
    family_id = await create_family(async_client)
    payload = await create_category(
        async_client, family_id, "Utilities", color="#45B7D1", icon="house"
    )

    async with get_session_scope() as session:
        category = await session.get(CategoriesTable, UUID(payload["id"]))
        assert category is not None
        assert category.family_id == UUID(family_id)
        assert category.name == "Utilities"
        assert category.type == "expense"
        assert category.color == "#45B7D1"
        assert category.icon == "house"
        assert category.parent_id is None
        assert category.is_active is True


async def test_create_category_rejects_unknown_family(async_client) -> None:
    response = await async_client.post(
        f"/families/{uuid4()}/categories",
        json={"name": "Orphan", "type": "expense"},
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Family not found."


async def test_create_category_rejects_blank_name(async_client) -> None:
    family_id = await create_family(async_client)

    response = await async_client.post(
        f"/families/{family_id}/categories",
        json={"name": "   ", "type": "expense"},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid name: cannot be empty."


async def test_list_categories_orders_by_type_parent_then_name(async_client) -> None:
    family_id = await create_family(async_client)
    food = await create_category(async_client, family_id, "Food")
    await create_category(async_client, family_id, "Restaurants", parent_id=food["id"])
    await create_category(async_client, family_id, "Groceries", parent_id=food["id"])
    await create_category(async_client, family_id, "Cars")
    work = await create_category(async_client, family_id, "Work", type="income")
    await create_category(
        async_client, family_id, "Bonus", type="income", parent_id=work["id"]
    )
    await create_category(async_client, family_id, "Gifts", type="income")

    response = await async_client.get(f"/families/{family_id}/categories")

    assert response.status_code == 200
    assert [item["name"] for item in response.json()] == [
        "Cars",
        "Food",
        "Groceries",
        "Restaurants",
        "Gifts",
        "Work",
        "Bonus",
    ]

    response = await async_client.get(
        f"/families/{family_id}/categories", params={"type": "income"}
    )

    assert response.status_code == 200
    assert [item["name"] for item in response.json()] == ["Gifts", "Work", "Bonus"]


async def test_list_root_categories(async_client) -> None:
    family_id = await create_family(async_client)
    food = await create_category(async_client, family_id, "Food")
    await create_category(async_client, family_id, "Groceries", parent_id=food["id"])

    response = await async_client.get(f"/families/{family_id}/categories/roots")

    assert response.status_code == 200
    assert [item["name"] for item in response.json()] == ["Food"]


async def test_get_category(async_client) -> None:
    family_id = await create_family(async_client)
    created = await create_category(async_client, family_id, "Insurance")

    response = await async_client.get(
        f"/families/{family_id}/categories/{created['id']}"
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["id"] == created["id"]
    assert payload["family_id"] == family_id
    assert payload["name"] == "Insurance"


async def test_get_category_from_other_family_is_not_found(async_client) -> None:
    family_id = await create_family(async_client)
    other_family_id = await create_family(async_client)
    created = await create_category(async_client, family_id, "Insurance")

    response = await async_client.get(
        f"/families/{other_family_id}/categories/{created['id']}"
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Category not found."


async def test_category_children_and_path(async_client) -> None:
    family_id = await create_family(async_client)
    a = await create_category(async_client, family_id, "A")
    b = await create_category(async_client, family_id, "B", parent_id=a["id"])
    c = await create_category(async_client, family_id, "C", parent_id=b["id"])

    children_response = await async_client.get(
        f"/families/{family_id}/categories/{a['id']}/children"
    )
    path_response = await async_client.get(
        f"/families/{family_id}/categories/{c['id']}/path"
    )

    assert children_response.status_code == 200
    assert [(node["name"], node["level"]) for node in children_response.json()] == [
        ("A", 0),
        ("B", 1),
        ("C", 2),
    ]
    assert path_response.status_code == 200
    assert [node["id"] for node in path_response.json()] == [a["id"], b["id"], c["id"]]


async def test_update_category(async_client) -> None:
    family_id = await create_family(async_client)
    created = await create_category(async_client, family_id, "Subscriptions")

    response = await async_client.patch(
        f"/families/{family_id}/categories/{created['id']}",
        json={"name": "Recurring", "color": "#000000", "icon": "repeat"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["id"] == created["id"]
    assert payload["name"] == "Recurring"
    assert payload["color"] == "#000000"
    assert payload["icon"] == "repeat"


async def test_update_category_requires_fields(async_client) -> None:
    family_id = await create_family(async_client)
    created = await create_category(async_client, family_id, "Subscriptions")

    response = await async_client.patch(
        f"/families/{family_id}/categories/{created['id']}", json={}
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "No fields to update."


async def test_update_category_rejects_null_name(async_client) -> None:
    family_id = await create_family(async_client)
    created = await create_category(async_client, family_id, "Subscriptions")

    response = await async_client.patch(
        f"/families/{family_id}/categories/{created['id']}", json={"name": None}
    )

    assert response.status_code == 422
    assert response.json()["detail"] == "Fields cannot be null: name"


async def test_update_category_can_clear_parent(async_client) -> None:
    family_id = await create_family(async_client)
    food = await create_category(async_client, family_id, "Food")
    groceries = await create_category(
        async_client, family_id, "Groceries", parent_id=food["id"]
    )

    response = await async_client.patch(
        f"/families/{family_id}/categories/{groceries['id']}",
        json={"parent_id": None},
    )

    assert response.status_code == 200
    assert response.json()["parent_id"] is None


async def test_create_category_rejects_duplicate_name(async_client) -> None:
    family_id = await create_family(async_client)
    await create_category(async_client, family_id, "Rent")

    response = await async_client.post(
        f"/families/{family_id}/categories",
        json={"name": "Rent", "type": "expense"},
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "Category name already exists."


async def test_update_category_rejects_duplicate_name(async_client) -> None:
    family_id = await create_family(async_client)
    await create_category(async_client, family_id, "Fixed")
    variable = await create_category(async_client, family_id, "Variable")

    response = await async_client.patch(
        f"/families/{family_id}/categories/{variable['id']}",
        json={"name": "Fixed"},
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "Category name already exists."


async def test_create_category_rejects_unknown_parent(async_client) -> None:
    family_id = await create_family(async_client)

    response = await async_client.post(
        f"/families/{family_id}/categories",
        json={"name": "Child", "type": "expense", "parent_id": str(uuid4())},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Parent category not found."


async def test_create_category_rejects_cross_family_parent(async_client) -> None:
    first_family_id = await create_family(async_client)
    second_family_id = await create_family(async_client)
    parent = await create_category(async_client, first_family_id, "Parent")

    response = await async_client.post(
        f"/families/{second_family_id}/categories",
        json={"name": "Child", "type": "expense", "parent_id": parent["id"]},
    )

    assert response.status_code == 400
    assert (
        response.json()["detail"] == "Parent category belongs to a different family."
    )


async def test_create_category_rejects_parent_of_other_type(async_client) -> None:
    family_id = await create_family(async_client)
    food = await create_category(async_client, family_id, "Food")

    response = await async_client.post(
        f"/families/{family_id}/categories",
        json={"name": "Salary", "type": "income", "parent_id": food["id"]},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Parent category has a different type."

    async with get_session_scope() as session:
        result = await session.execute(
            select(CategoriesTable).where(CategoriesTable.family_id == UUID(family_id))
        )
        assert [category.name for category in result.scalars()] == ["Food"]


async def test_update_category_rejects_self_parent(async_client) -> None:
    family_id = await create_family(async_client)
    created = await create_category(async_client, family_id, "Self")

    response = await async_client.patch(
        f"/families/{family_id}/categories/{created['id']}",
        json={"parent_id": created["id"]},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Category cannot be its own parent."


async def test_update_category_rejects_cycle(async_client) -> None:
    family_id = await create_family(async_client)
    a = await create_category(async_client, family_id, "A")
    b = await create_category(async_client, family_id, "B", parent_id=a["id"])
    c = await create_category(async_client, family_id, "C", parent_id=b["id"])

    response = await async_client.patch(
        f"/families/{family_id}/categories/{a['id']}",
        json={"parent_id": c["id"]},
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "Circular reference would be created."

    async with get_session_scope() as session:
        category = await session.get(CategoriesTable, UUID(a["id"]))
        assert category.parent_id is None


async def test_delete_category_is_soft(async_client) -> None:
    family_id = await create_family(async_client)
    created = await create_category(async_client, family_id, "To Delete")

    response = await async_client.delete(
        f"/families/{family_id}/categories/{created['id']}"
    )

    assert response.status_code == 204
    assert response.content == b""

    async with get_session_scope() as session:
        category = await session.get(CategoriesTable, UUID(created["id"]))
        assert category is not None
        assert category.is_active is False

    get_response = await async_client.get(
        f"/families/{family_id}/categories/{created['id']}"
    )
    assert get_response.status_code == 200
    assert get_response.json()["is_active"] is False

    list_response = await async_client.get(f"/families/{family_id}/categories")
    assert list_response.json() == []

    second_delete = await async_client.delete(
        f"/families/{family_id}/categories/{created['id']}"
    )
    assert second_delete.status_code == 404


async def test_delete_category_with_subcategories_is_rejected(async_client) -> None:
    family_id = await create_family(async_client)
    parent = await create_category(async_client, family_id, "P")
    child = await create_category(async_client, family_id, "Q", parent_id=parent["id"])

    response = await async_client.delete(
        f"/families/{family_id}/categories/{parent['id']}"
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "Cannot delete category with subcategories."

    response = await async_client.delete(
        f"/families/{family_id}/categories/{child['id']}"
    )
    assert response.status_code == 204

    response = await async_client.delete(
        f"/families/{family_id}/categories/{parent['id']}"
    )
    assert response.status_code == 204


async def test_create_default_categories(async_client) -> None:
    family_id = await create_family(async_client)

    response = await async_client.post(f"/families/{family_id}/categories/defaults")

    assert response.status_code == 201
    assert len(response.json()) == 13

    response = await async_client.post(f"/families/{family_id}/categories/defaults")
    assert response.status_code == 409


async def seed_family(*names) -> tuple:
    async with get_session_scope() as session:
        family = await FamiliesDataAccess(session).create_family(
            name=f"Family-{uuid4()}", currency="USD"
        )
        service = CategoriesService(CategoriesDataAccess(session), SETTINGS)
        categories = [
            await service.create_category(family_id=family.id, name=name, type="expense")
            for name in names
        ]
    return family, categories


async def test_delete_and_child_create_are_serialized_in_db(app) -> None:
    family, (parent,) = await seed_family("P")
    checked = anyio.Event()
    outcomes = {}

    async def delete_parent():
        async with get_session_scope() as session:
            store = CategoriesDataAccess(session)
            pause_after(store, "has_active_children", checked)
            await CategoriesService(store, SETTINGS).delete_category(
                family.id, parent.id
            )
        outcomes["delete"] = "deleted"

    async def create_child():
        await checked.wait()
        try:
            async with get_session_scope() as session:
                await CategoriesService(
                    CategoriesDataAccess(session), SETTINGS
                ).create_category(
                    family_id=family.id, name="Q", type="expense", parent_id=parent.id
                )
        except CategoryError as exc:
            outcomes["create"] = exc
        else:
            outcomes["create"] = "created"

    async with anyio.create_task_group() as tg:
        tg.start_soon(delete_parent)
        tg.start_soon(create_child)

    assert outcomes["delete"] == "deleted"
    assert isinstance(outcomes["create"], ParentCategoryInactiveError)

    async with get_session_scope() as session:
        result = await session.execute(
            select(CategoriesTable).where(CategoriesTable.family_id == family.id)
        )
        assert [(row.name, row.is_active) for row in result.scalars()] == [("P", False)]


async def test_crossing_reparents_cannot_form_cycle_in_db(app) -> None:
    family, (a, b) = await seed_family("A", "B")
    checked = anyio.Event()
    outcomes = {}

    async def move_a_under_b():
        async with get_session_scope() as session:
            store = CategoriesDataAccess(session)
            pause_after(store, "list_active_categories", checked)
            await CategoriesService(store, SETTINGS).update_category(
                family.id, a.id, {"parent_id": b.id}
            )
        outcomes["a"] = "moved"

    async def move_b_under_a():
        await checked.wait()
        try:
            async with get_session_scope() as session:
                await CategoriesService(
                    CategoriesDataAccess(session), SETTINGS
                ).update_category(family.id, b.id, {"parent_id": a.id})
        except CategoryError as exc:
            outcomes["b"] = exc
        else:
            outcomes["b"] = "moved"

    async with anyio.create_task_group() as tg:
        tg.start_soon(move_a_under_b)
        tg.start_soon(move_b_under_a)

    assert outcomes["a"] == "moved"
    assert isinstance(outcomes["b"], CategoryCycleError)

    async with get_session_scope() as session:
        assert (await session.get(CategoriesTable, a.id)).parent_id == b.id
        assert (await session.get(CategoriesTable, b.id)).parent_id is None
