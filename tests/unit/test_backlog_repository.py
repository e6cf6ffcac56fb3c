"""
Unit tests for the backlog repository.
"""

from uuid import uuid4

import pytest

from timebox.core.exceptions import NotFoundError
from timebox.models.backlog import BacklogItemCreate, BacklogItemUpdate


@pytest.mark.asyncio
async def test_create_backlog_item(backlog_repo, test_user_id):
    """Test creating a backlog item with the default estimate."""
    item = await backlog_repo.create(test_user_id, BacklogItemCreate(title="Write report"))

    assert item.id is not None
    assert item.user_id == test_user_id
    assert item.estimate_minutes == 30
    assert item.tags == []


@pytest.mark.asyncio
async def test_list_backlog_items(backlog_repo, test_user_id):
    for i in range(3):
        await backlog_repo.create(test_user_id, BacklogItemCreate(title=f"Item {i}"))
    await backlog_repo.create("other_user", BacklogItemCreate(title="Not mine"))

    items = await backlog_repo.list(test_user_id)

    assert len(items) == 3
    assert all(item.user_id == test_user_id for item in items)


@pytest.mark.asyncio
async def test_update_backlog_item(backlog_repo, test_user_id):
    item = await backlog_repo.create(
        test_user_id, BacklogItemCreate(title="Draft", notes="first pass", tags=["#low"])
    )

    updated = await backlog_repo.update(
        test_user_id, item.id, BacklogItemUpdate(estimate_minutes=90, notes=None)
    )

    assert updated.title == "Draft"
    assert updated.estimate_minutes == 90
    assert updated.notes is None
    assert updated.tags == ["#low"]


@pytest.mark.asyncio
async def test_update_unknown_item_raises(backlog_repo, test_user_id):
    with pytest.raises(NotFoundError):
        await backlog_repo.update(test_user_id, uuid4(), BacklogItemUpdate(title="x"))


@pytest.mark.asyncio
async def test_delete_backlog_item(backlog_repo, test_user_id):
    item = await backlog_repo.create(test_user_id, BacklogItemCreate(title="Temp"))

    assert await backlog_repo.delete(test_user_id, item.id) is True
    assert await backlog_repo.get(test_user_id, item.id) is None
    assert await backlog_repo.delete(test_user_id, item.id) is False
