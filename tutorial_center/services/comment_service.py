"""
Comment service — append-only comments on an article.

Comments cannot be edited or deleted through the service layer; they go
away only together with their article (hard delete).
"""
from sqlalchemy.ext.asyncio import AsyncSession

from tutorial_center.exceptions import NotFoundError
from tutorial_center.models import AppUser, Article, Comment
from tutorial_center.repository import Repository
from tutorial_center.schemas import CommentCreate


async def add_comment(
    db: AsyncSession,
    article_id: int,
    user_id: int,
    data: CommentCreate,
) -> dict:
    """
    Append a comment by *user_id* to *article_id* and return its view.

    Raises ``NotFoundError`` when the article is missing or soft-deleted,
    or when the user is missing or soft-deleted.
    """
    repo = Repository(db)

    article = await repo.get_by_id(Article, article_id)
    if article is None or article.deleted_at is not None:
        raise NotFoundError("Article", article_id)

    user = await repo.get_by_id(AppUser, user_id)
    if user is None or user.deleted_at is not None:
        raise NotFoundError("AppUser", user_id)

    comment = await repo.add(Comment(text=data.text, article_id=article_id, user_id=user_id))

    return {
        "id": comment.id,
        "text": comment.text,
        "article_id": comment.article_id,
        "name": user.full_name,
        "image": user.image_url,
        "created_at": comment.created_at.isoformat() if comment.created_at else None,
    }
