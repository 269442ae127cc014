"""
Article approval service — the publication gate of an article.

Every article owns exactly one approval row.  There is no transition
guard: any status may follow any other, the editor's decision is simply
recorded.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from tutorial_center.exceptions import InvalidArgumentError, NotFoundError
from tutorial_center.models import ApprovalStatus, Article, ArticleApproval
from tutorial_center.repository import Repository

logger = logging.getLogger(__name__)


def _approval_to_dict(approval: ArticleApproval) -> dict:
    return {
        "id": approval.id,
        "article_id": approval.article_id,
        "status": ApprovalStatus(approval.status).value,
        "status_name": ApprovalStatus(approval.status).name.lower(),
        "updated_at": approval.updated_at.isoformat() if approval.updated_at else None,
    }


def parse_status(status) -> ApprovalStatus:
    """
    Coerce *status* (enum member, int value, digit string or
    case-insensitive name) to an ``ApprovalStatus``.

    Booleans, floats and every other type are rejected with
    ``InvalidArgumentError``.
    """
    if isinstance(status, ApprovalStatus):
        return status
    try:
        if isinstance(status, int) and not isinstance(status, bool):
            return ApprovalStatus(status)
        if isinstance(status, str):
            text = status.strip()
            if text.isdigit():
                return ApprovalStatus(int(text))
            return ApprovalStatus[text.upper()]
    except (KeyError, ValueError):
        pass
    raise InvalidArgumentError(f"Invalid approval status: {status!r}")


async def _find_approval(repo: Repository, article_id: int) -> ArticleApproval | None:
    return await repo.first(
        repo.get_all(ArticleApproval).where(ArticleApproval.article_id == article_id)
    )


async def get_approval(db: AsyncSession, article_id: int) -> dict | None:
    approval = await _find_approval(Repository(db), article_id)
    return _approval_to_dict(approval) if approval else None


async def approve(db: AsyncSession, article_id: int, status) -> dict:
    """
    Record *status* for *article_id*: insert the approval row on first
    use, otherwise overwrite the stored status.

    Raises ``InvalidArgumentError`` for an unknown status and
    ``NotFoundError`` when the article does not exist.
    """
    new_status = parse_status(status)

    repo = Repository(db)
    if await repo.get_by_id(Article, article_id) is None:
        raise NotFoundError("Article", article_id)

    approval = await _find_approval(repo, article_id)
    if approval is None:
        approval = await repo.add(ArticleApproval(article_id=article_id, status=new_status.value))
    else:
        approval.status = new_status.value
        approval.updated_at = datetime.now(timezone.utc)
        await repo.update(approval)

    logger.info("Article %s approval status -> %s", article_id, new_status.name)
    return _approval_to_dict(approval)
