"""
Tag service — lookup of article categories.

Tags change rarely, so the read views go through the cache-aside pattern
(Redis, falling back to the database).  Any tag write purges every
``tags:*`` key.  Existence checks on article writes query the database
directly: a cached entry may outlive a rolled-back transaction.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from tutorial_center.cache import cache
from tutorial_center.config import settings
from tutorial_center.models import ArticleTag
from tutorial_center.repository import Repository
from tutorial_center.schemas import TagCreate, TagResponse

logger = logging.getLogger(__name__)


def _tag_to_dict(tag: ArticleTag) -> dict:
    return TagResponse.model_validate(tag).model_dump()


async def get_tag(db: AsyncSession, tag_id: int) -> dict | None:
    """Return the tag dict for *tag_id*, or None when it does not exist."""
    cache_key = f"tags:detail:{tag_id}"
    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    tag = await Repository(db).get_by_id(ArticleTag, tag_id)
    if tag is None:
        return None

    data = _tag_to_dict(tag)
    await cache.set(cache_key, data, ttl=settings.CACHE_TTL_TAGS)
    return data


async def get_tags(db: AsyncSession) -> list[dict]:
    """Return every tag ordered by name."""
    cache_key = "tags:list"
    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    repo = Repository(db)
    tags = await repo.scalars(repo.get_all(ArticleTag).order_by(ArticleTag.name))
    data = [_tag_to_dict(t) for t in tags]
    await cache.set(cache_key, data, ttl=settings.CACHE_TTL_TAGS)
    return data


async def create_tag(db: AsyncSession, data: TagCreate) -> dict:
    """
    Create a tag and return its dict.

    Name uniqueness is enforced by the database; the caller sees the
    ``IntegrityError`` on a duplicate.
    """
    tag = await Repository(db).add(ArticleTag(name=data.name))
    await cache.invalidate_tags()
    logger.info("Created tag %s (%s)", tag.id, tag.name)
    return _tag_to_dict(tag)
