"""
Identity and role store.

Authentication happens upstream in the identity provider.  The host
(request handler, worker, test) tells the services who is acting by
wrapping the call in ``signed_in_as(user_id)``; the id lives in a
``ContextVar`` so concurrent requests never see each other's user.

Roles are kept in the ``roles`` / ``user_roles`` tables mirrored from the
provider.
"""
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tutorial_center.exceptions import NotFoundError
from tutorial_center.models import AppUser, Role, user_roles
from tutorial_center.repository import Repository

logger = logging.getLogger(__name__)


class UserRoles:
    DECADEV = "Decadev"
    EDITOR = "Editor"
    ADMIN = "Admin"


# ---------------------------------------------------------------------------
# Session-bound current user
# ---------------------------------------------------------------------------

current_user_id_var: ContextVar[int | None] = ContextVar("current_user_id", default=None)


def get_current_user_id() -> int | None:
    return current_user_id_var.get()


@contextmanager
def signed_in_as(user_id: int | None) -> Iterator[None]:
    """Run the enclosed block as *user_id*, restoring the previous user after."""
    token = current_user_id_var.set(user_id)
    try:
        yield
    finally:
        current_user_id_var.reset(token)


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------

async def _resolve_role(db: AsyncSession, name: str) -> Role:
    result = await db.execute(select(Role).where(Role.name == name))
    role = result.scalar_one_or_none()
    if role is None:
        role = Role(name=name)
        db.add(role)
        await db.flush()
    return role


async def get_roles(db: AsyncSession, user_id: int) -> list[str]:
    """Role names assigned to *user_id* (empty for an unknown user)."""
    q = (
        select(Role.name)
        .join(user_roles, user_roles.c.role_id == Role.id)
        .where(user_roles.c.user_id == user_id)
        .order_by(Role.name)
    )
    result = await db.execute(q)
    return list(result.scalars().all())


async def assign_role(db: AsyncSession, user_id: int, role_name: str) -> list[str]:
    """
    Add *role_name* to the user's roles, creating the role if needed.

    Assigning a role the user already holds is a no-op.  Returns the
    user's role names afterwards.
    """
    repo = Repository(db)
    user = await repo.first(
        select(AppUser).where(AppUser.id == user_id).options(selectinload(AppUser.roles))
    )
    if user is None:
        raise NotFoundError("AppUser", user_id)

    if role_name not in {r.name for r in user.roles}:
        user.roles.append(await _resolve_role(db, role_name))
        await db.flush()
        logger.info("Assigned role %s to user %s", role_name, user_id)

    return sorted(r.name for r in user.roles)
