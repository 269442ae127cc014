"""
User management service — profiles, soft delete, roles and read history.

Profiles are mirrored from the identity provider.  A soft-deleted user
keeps its row but is invisible to every lookup here; deleting the same
user twice reports False instead of raising.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from tutorial_center.exceptions import NotFoundError
from tutorial_center.identity import assign_role
from tutorial_center.models import AppUser, Article, ArticleRead
from tutorial_center.repository import Repository
from tutorial_center.schemas import UserCreate, UserUpdate
from tutorial_center.services.article_service import article_to_view

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _profile_fields(user: AppUser) -> dict:
    return {
        "first_name": user.first_name,
        "last_name": user.last_name,
        "email": user.email,
        "phone_number": user.phone_number,
        "image_url": user.image_url,
        "squad": user.squad,
        "stack": user.stack,
    }


def _user_to_dict(user: AppUser) -> dict:
    """Serialise an AppUser with its roles (``roles`` must be loaded)."""
    return {
        "id": user.id,
        **_profile_fields(user),
        "role_names": sorted(r.name for r in user.roles),
    }


def _active_users(repo: Repository):
    return repo.get_all(AppUser).where(AppUser.deleted_at.is_(None))


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def create_user(db: AsyncSession, data: UserCreate) -> dict:
    """
    Mirror a new profile and assign the requested roles.

    Email uniqueness is enforced by the database; a duplicate surfaces as
    ``IntegrityError``.
    """
    now = datetime.now(timezone.utc)
    user = await Repository(db).add(
        AppUser(**data.model_dump(exclude={"roles"}), created_at=now, updated_at=now)
    )
    for role_name in data.roles:
        await assign_role(db, user.id, role_name)

    logger.info("Created user %s", user.id)
    return await get_user_by_id(db, user.id)


async def get_all_users(db: AsyncSession) -> list[dict]:
    """Every user that is not soft-deleted, with role names."""
    repo = Repository(db)
    users = await repo.scalars(
        _active_users(repo).options(selectinload(AppUser.roles)).order_by(AppUser.id)
    )
    return [_user_to_dict(u) for u in users]


async def get_user_by_id(db: AsyncSession, user_id: int) -> dict | None:
    """Return the user dict, or None when absent or soft-deleted."""
    repo = Repository(db)
    user = await repo.first(
        _active_users(repo).where(AppUser.id == user_id).options(selectinload(AppUser.roles))
    )
    if user is None:
        return None
    return _user_to_dict(user)


async def soft_delete_user(db: AsyncSession, user_id: int) -> dict | bool:
    """
    Stamp ``deleted_at`` on the user.

    Returns ``{"deleted_at": ...}`` on success and False when the user
    does not exist or was already deleted.
    """
    repo = Repository(db)
    user = await repo.get_by_id(AppUser, user_id)
    if user is None or user.deleted_at is not None:
        return False

    now = datetime.now(timezone.utc)
    user.deleted_at = now
    user.updated_at = now
    await repo.update(user)

    logger.info("Soft-deleted user %s", user_id)
    return {"deleted_at": now.isoformat()}


async def update_user(db: AsyncSession, user_id: int, data: UserUpdate) -> dict:
    """
    Overwrite every profile field with *data*.

    Unlike article updates nothing is merged: a null in the payload
    clears the stored value.  Raises ``NotFoundError`` when the user is
    absent or soft-deleted.
    """
    repo = Repository(db)
    user = await repo.get_by_id(AppUser, user_id)
    if user is None or user.deleted_at is not None:
        raise NotFoundError("AppUser", user_id)

    for field, value in data.model_dump().items():
        setattr(user, field, value)
    user.updated_at = datetime.now(timezone.utc)
    await repo.update(user)

    return _profile_fields(user)


async def get_article_read_by_user(db: AsyncSession, user_id: int) -> list[dict]:
    """
    Articles *user_id* has read, each listed once, newest first.

    Soft-deleted articles are left out.
    """
    repo = Repository(db)
    read_ids = select(ArticleRead.article_id).where(ArticleRead.user_id == user_id)
    articles = await repo.scalars(
        repo.get_all(Article)
        .where(Article.id.in_(read_ids), Article.deleted_at.is_(None))
        .options(joinedload(Article.author), joinedload(Article.tag))
        .order_by(Article.created_at.desc(), Article.id.desc())
    )
    return [article_to_view(a) for a in articles]
