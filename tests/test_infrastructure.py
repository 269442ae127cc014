"""
Tests for the pieces the services stand on: the generic repository,
pagination defaults, the identity / role store, the Redis cache manager,
logging set-up and the lifecycle hooks.
"""
import logging

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from tutorial_center import lifecycle
from tutorial_center.cache import CacheManager, cache
from tutorial_center.config import settings
from tutorial_center.exceptions import NotFoundError
from tutorial_center.identity import (
    UserRoles,
    assign_role,
    get_current_user_id,
    get_roles,
    signed_in_as,
)
from tutorial_center.logging_config import LOGGER_NAME, configure_logging
from tutorial_center.models import ArticleTag
from tutorial_center.pagination import resolve_page
from tutorial_center.repository import Repository
from tutorial_center.services import tag_service


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_repository_crud(db_session: AsyncSession):
    repo = Repository(db_session)

    tag = await repo.add(ArticleTag(name="Elixir"))
    assert tag.id is not None
    assert (await repo.get_by_id(ArticleTag, tag.id)).name == "Elixir"

    tag.name = "Erlang"
    await repo.update(tag)
    stmt = repo.get_all(ArticleTag).where(ArticleTag.name == "Erlang")
    assert await repo.count(stmt) == 1
    assert await repo.exists(stmt)

    await repo.delete(tag)
    assert await repo.get_by_id(ArticleTag, tag.id) is None
    assert await repo.scalars(repo.get_all(ArticleTag)) == []


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------

def test_resolve_page_defaults_and_clamping():
    assert resolve_page(None, None) == (1, 10)
    assert resolve_page(3, 25) == (3, 25)
    assert resolve_page(1, settings.MAX_PAGE_SIZE + 50) == (1, settings.MAX_PAGE_SIZE)


# ---------------------------------------------------------------------------
# Identity and roles
# ---------------------------------------------------------------------------

def test_signed_in_as_restores_previous_user():
    assert get_current_user_id() is None
    with signed_in_as(1):
        assert get_current_user_id() == 1
        with signed_in_as(2):
            assert get_current_user_id() == 2
        assert get_current_user_id() == 1
    assert get_current_user_id() is None


@pytest.mark.asyncio
async def test_assign_role_is_idempotent(db_session: AsyncSession, make_user):
    user = await make_user()

    await assign_role(db_session, user.id, UserRoles.EDITOR)
    roles = await assign_role(db_session, user.id, UserRoles.EDITOR)
    assert roles == ["Editor"]

    await assign_role(db_session, user.id, UserRoles.ADMIN)
    assert await get_roles(db_session, user.id) == ["Admin", "Editor"]


@pytest.mark.asyncio
async def test_assign_role_unknown_user(db_session: AsyncSession):
    with pytest.raises(NotFoundError):
        await assign_role(db_session, 99999, UserRoles.ADMIN)


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_cache_disabled_degrades_gracefully():
    manager = CacheManager()
    assert manager.enabled is False
    await manager.set("k", {"a": 1})
    assert await manager.get("k") is None
    await manager.delete_pattern("k*")


@pytest.mark.asyncio
async def test_tag_lookup_is_cached_and_invalidated(db_session: AsyncSession, make_tag, fake_redis):
    tag = await make_tag("Haskell")

    assert await tag_service.get_tag(db_session, tag.id) == {"id": tag.id, "name": "Haskell"}
    assert f"tags:detail:{tag.id}" in fake_redis.data
    assert await tag_service.get_tag(db_session, tag.id) == {"id": tag.id, "name": "Haskell"}

    await tag_service.get_tags(db_session)
    assert "tags:list" in fake_redis.data

    await cache.invalidate_tags()
    assert fake_redis.data == {}


@pytest.mark.asyncio
async def test_empty_tag_list_is_served_from_cache(db_session: AsyncSession, fake_redis):
    assert await tag_service.get_tags(db_session) == []
    assert fake_redis.data["tags:list"] == "[]"

    # A row written behind the cache's back stays invisible until invalidation.
    db_session.add(ArticleTag(name="Zig"))
    await db_session.flush()
    assert await tag_service.get_tags(db_session) == []


@pytest.mark.asyncio
async def test_startup_without_redis_keeps_cache_disabled(monkeypatch):
    monkeypatch.setattr(settings, "REDIS_URL", "redis://127.0.0.1:1/0")

    await lifecycle.startup()
    assert cache.enabled is False
    await lifecycle.shutdown()


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def test_configure_logging_adds_single_handler():
    logger = configure_logging("debug")
    configure_logging("warning")
    assert logger.name == LOGGER_NAME
    assert len(logger.handlers) == 1
    assert logger.level == logging.WARNING
