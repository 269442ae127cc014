"""
User management tests — listing with roles, soft delete semantics, full
profile overwrite and per-user read history.
"""
import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tutorial_center.exceptions import NotFoundError
from tutorial_center.identity import UserRoles
from tutorial_center.models import AppUser
from tutorial_center.schemas import UserCreate, UserUpdate
from tutorial_center.services import article_service, user_service


@pytest.mark.asyncio
async def test_create_user_with_roles(db_session: AsyncSession):
    created = await user_service.create_user(
        db_session,
        UserCreate(
            first_name="Linus",
            last_name="Torvalds",
            email="linus@example.com",
            squad="Kernel",
            roles=[UserRoles.EDITOR, UserRoles.DECADEV],
        ),
    )
    assert created["email"] == "linus@example.com"
    assert created["role_names"] == ["Decadev", "Editor"]


@pytest.mark.asyncio
async def test_create_user_duplicate_email(db_session: AsyncSession):
    await user_service.create_user(
        db_session, UserCreate(first_name="A", last_name="One", email="same@example.com")
    )
    with pytest.raises(IntegrityError):
        await user_service.create_user(
            db_session, UserCreate(first_name="B", last_name="Two", email="same@example.com")
        )


@pytest.mark.asyncio
async def test_get_all_users_excludes_soft_deleted(db_session: AsyncSession, make_user):
    keep = await make_user("Keep", "Me")
    drop = await make_user("Drop", "Me")
    await user_service.create_user(
        db_session,
        UserCreate(first_name="Admin", last_name="User", email="admin@example.com", roles=["Admin"]),
    )

    assert await user_service.soft_delete_user(db_session, drop.id)

    users = await user_service.get_all_users(db_session)
    assert [u["first_name"] for u in users] == ["Keep", "Admin"]
    assert users[0]["id"] == keep.id
    assert users[0]["role_names"] == []
    assert users[1]["role_names"] == ["Admin"]


@pytest.mark.asyncio
async def test_soft_deleted_user_is_not_found_but_row_remains(db_session: AsyncSession, make_user):
    user = await make_user()
    assert await user_service.get_user_by_id(db_session, user.id) is not None

    result = await user_service.soft_delete_user(db_session, user.id)
    assert result["deleted_at"] is not None

    assert await user_service.get_user_by_id(db_session, user.id) is None
    row = await db_session.get(AppUser, user.id)
    assert row is not None
    assert row.deleted_at is not None


@pytest.mark.asyncio
async def test_soft_delete_user_reports_false_instead_of_raising(db_session: AsyncSession, make_user):
    user = await make_user()
    await user_service.soft_delete_user(db_session, user.id)

    assert await user_service.soft_delete_user(db_session, user.id) is False
    assert await user_service.soft_delete_user(db_session, 99999) is False


@pytest.mark.asyncio
async def test_get_user_by_id_missing(db_session: AsyncSession):
    assert await user_service.get_user_by_id(db_session, 99999) is None


@pytest.mark.asyncio
async def test_update_user_overwrites_every_field(db_session: AsyncSession, make_user):
    user = await make_user("Old", "Name", phone_number="123", stack="Go", squad="One")

    updated = await user_service.update_user(
        db_session,
        user.id,
        UserUpdate(
            first_name="New",
            last_name="Name",
            email="new@example.com",
            phone_number=None,
            image_url="me.png",
            squad="Two",
            stack=None,
        ),
    )
    assert updated == {
        "first_name": "New",
        "last_name": "Name",
        "email": "new@example.com",
        "phone_number": None,
        "image_url": "me.png",
        "squad": "Two",
        "stack": None,
    }


def test_update_user_payload_requires_every_field():
    with pytest.raises(ValueError):
        UserUpdate(first_name="Only", last_name="Names", email="x@example.com")


@pytest.mark.asyncio
async def test_update_user_not_found_or_deleted(db_session: AsyncSession, make_user):
    payload = UserUpdate(
        first_name="X", last_name="Y", email="x@example.com",
        phone_number=None, image_url=None, squad=None, stack=None,
    )
    with pytest.raises(NotFoundError):
        await user_service.update_user(db_session, 99999, payload)

    user = await make_user()
    await user_service.soft_delete_user(db_session, user.id)
    with pytest.raises(NotFoundError):
        await user_service.update_user(db_session, user.id, payload)


@pytest.mark.asyncio
async def test_get_article_read_by_user_lists_each_article_once(
    db_session: AsyncSession, make_tag, make_article, make_user
):
    tag = await make_tag("Go")
    author = await make_user("Rob", "Pike")
    reader = await make_user()
    older = await make_article(tag, title="Older", author=author, age_minutes=30)
    newer = await make_article(tag, title="Newer", author=author, age_minutes=5)
    await make_article(tag, title="Unread", author=author)

    await article_service.get_single_article(db_session, older.id, reader.id)
    await article_service.get_single_article(db_session, older.id, reader.id)
    await article_service.get_single_article(db_session, newer.id, reader.id)

    history = await user_service.get_article_read_by_user(db_session, reader.id)
    assert [a["title"] for a in history] == ["Newer", "Older"]
    assert history[1]["read_count"] == 2
    assert history[0]["author_name"] == "Rob Pike"
    assert history[0]["tag_name"] == "Go"
