"""
Article service — business logic for the Article aggregate.

Design notes
------------
- Reads that show articles to readers only ever see rows whose approval
  status is Published and whose ``deleted_at`` is unset.  Soft-deleted
  rows stay in storage; ``delete_article`` is the separate hard delete.
- Viewing the detail page as a signed-in reader logs a read (one
  ``ArticleRead`` row, ``read_count + 1``).  The same command is exposed
  on its own as ``log_article_read``.
- Many-to-one relationships (author, tag) are eager loaded with
  ``joinedload``; nothing relies on lazy loading.
- Service functions flush but do not commit; the transaction boundary
  is owned by ``get_db``.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import Select, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager, joinedload

from tutorial_center.config import settings
from tutorial_center.exceptions import InternalServiceError, InvalidArgumentError, NotFoundError
from tutorial_center.identity import get_current_user_id
from tutorial_center.models import (
    AppUser,
    ApprovalStatus,
    Article,
    ArticleApproval,
    ArticleBookmark,
    ArticleLike,
    ArticleRead,
    ArticleTag,
    Comment,
    ReportStatus,
)
from tutorial_center.pagination import paginate, resolve_page
from tutorial_center.repository import Repository
from tutorial_center.schemas import (
    ArticleCreate,
    ArticleFilter,
    ArticleUpdate,
    AuthoredArticleCreate,
    AuthorStatsRequest,
    PaginatedResponse,
)
from tutorial_center.services import approval_service

logger = logging.getLogger(__name__)

# Author and tag are needed by every denormalized article view.
_VIEW_OPTIONS = (joinedload(Article.author), joinedload(Article.tag))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def calculate_read_time(text: str) -> int:
    """Minutes needed to read *text* at ``settings.READING_SPEED_WPM``."""
    words = len(text.split())
    return round(words / settings.READING_SPEED_WPM)


def format_read_time(text: str) -> str:
    return f"{calculate_read_time(text)} mins"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _visible(stmt: Select) -> Select:
    return stmt.where(Article.deleted_at.is_(None))


def _published(repo: Repository) -> Select:
    """Articles a reader may see: approved for publication and not soft-deleted."""
    return _visible(
        repo.get_all(Article)
        .join(ArticleApproval, ArticleApproval.article_id == Article.id)
        .where(ArticleApproval.status == ApprovalStatus.PUBLISHED.value)
    )


async def _require_article(repo: Repository, article_id: int) -> Article:
    article = await repo.get_by_id(Article, article_id)
    if article is None:
        raise NotFoundError("Article", article_id)
    return article


async def _require_user(repo: Repository, user_id: int) -> AppUser:
    user = await repo.get_by_id(AppUser, user_id)
    if user is None or user.deleted_at is not None:
        raise NotFoundError("AppUser", user_id)
    return user


async def _require_tag(repo: Repository, tag_id: int) -> None:
    # Read the table, not the tag cache: cached tags may belong to a rolled-back write.
    if await repo.get_by_id(ArticleTag, tag_id) is None:
        raise NotFoundError("ArticleTag", tag_id)


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def article_to_view(article: Article) -> dict:
    """
    Serialise an Article to the denormalized list view.

    Expects ``author`` and ``tag`` to be loaded (``_VIEW_OPTIONS``).
    """
    author = article.author
    return {
        "id": article.id,
        "title": article.title,
        "text": article.text,
        "author_id": article.author_id,
        "author_name": author.full_name if author else None,
        "author_image": author.image_url if author else None,
        "tag_id": article.tag_id,
        "tag_name": article.tag.name if article.tag else None,
        "read_count": article.read_count,
        "image_url": article.image_url,
        "public_id": article.public_id,
        "read_time": article.read_time,
        "is_deleted": article.is_deleted,
        "created_at": _isoformat(article.created_at),
    }


def _editable_fields(article: Article) -> dict:
    return {
        "title": article.title,
        "tag_id": article.tag_id,
        "text": article.text,
        "image_url": article.image_url,
    }


def _comment_to_dict(comment: Comment) -> dict:
    user = comment.user
    return {
        "id": comment.id,
        "text": comment.text,
        "name": user.full_name if user else None,
        "image": user.image_url if user else None,
        "created_at": _isoformat(comment.created_at),
    }


# ---------------------------------------------------------------------------
# Create / update
# ---------------------------------------------------------------------------

async def _insert_article(db: AsyncSession, data: ArticleCreate, **extra) -> Article:
    repo = Repository(db)
    await _require_tag(repo, data.tag_id)

    now = _utcnow()
    article = await repo.add(
        Article(
            title=data.title,
            tag_id=data.tag_id,
            text=data.text,
            image_url=data.image_url,
            read_count=0,
            read_time=format_read_time(data.text),
            created_at=now,
            updated_at=now,
            **extra,
        )
    )
    # Every article starts life waiting for an editor.
    await approval_service.approve(db, article.id, ApprovalStatus.PENDING)
    return article


async def create_article(db: AsyncSession, data: ArticleCreate) -> dict:
    """
    Create an article without an author and queue it for approval.

    Raises ``NotFoundError`` when ``data.tag_id`` does not exist.
    """
    article = await _insert_article(db, data)
    logger.info("Created article %s", article.id)
    return {"id": article.id, **_editable_fields(article), "read_time": article.read_time}


async def create_authored_article(db: AsyncSession, data: AuthoredArticleCreate) -> dict:
    """
    Create an article on behalf of the signed-in user.

    The author comes from ``identity.signed_in_as``; calling this with no
    user in context raises ``InternalServiceError``.
    """
    author_id = get_current_user_id()
    if author_id is None:
        raise InternalServiceError("No signed-in user to record as the article author.")
    await _require_user(Repository(db), author_id)

    article = await _insert_article(db, data, author_id=author_id, public_id=data.public_id)
    logger.info("Author %s created article %s", author_id, article.id)
    return {
        "id": article.id,
        **_editable_fields(article),
        "author_id": article.author_id,
        "public_id": article.public_id,
        "read_count": article.read_count,
        "read_time": article.read_time,
    }


async def update_article(db: AsyncSession, article_id: int, data: ArticleUpdate) -> dict:
    """
    Merge *data* into the article and return its editable fields.

    Fields left out of the payload, or sent as null, keep their stored
    value.  Raises ``NotFoundError`` for an unknown article or tag.
    """
    repo = Repository(db)
    article = await _require_article(repo, article_id)

    changes = data.model_dump(exclude_none=True)
    if "tag_id" in changes:
        await _require_tag(repo, changes["tag_id"])

    for field, value in changes.items():
        setattr(article, field, value)
    if "text" in changes:
        article.read_time = format_read_time(article.text)
    article.updated_at = _utcnow()

    await repo.update(article)
    return _editable_fields(article)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def get_article_by_id(db: AsyncSession, article_id: int) -> Article | None:
    return await Repository(db).get_by_id(Article, article_id)


async def log_article_read(db: AsyncSession, article_id: int, user_id: int) -> int:
    """
    Record that *user_id* read *article_id* and bump the read counter.

    Returns the new ``read_count``.
    """
    repo = Repository(db)
    article = await _require_article(repo, article_id)
    await _require_user(repo, user_id)

    await repo.add(ArticleRead(user_id=user_id, article_id=article_id))
    article.read_count += 1
    await repo.update(article)
    return article.read_count


async def get_single_article(
    db: AsyncSession, article_id: int, user_id: int | None = None
) -> dict | None:
    """
    Return the detail view of *article_id*, or None when it does not exist
    or has been soft-deleted.

    With a *user_id* the view also says whether that reader liked or
    bookmarked the article, and the read is logged before the view is
    built, so ``read_count`` already includes it.
    """
    repo = Repository(db)
    article = await repo.first(
        _visible(repo.get_all(Article).where(Article.id == article_id)).options(
            joinedload(Article.tag)
        )
    )
    if article is None:
        return None

    likes_q = repo.get_all(ArticleLike).where(ArticleLike.article_id == article_id)
    like_count = await repo.count(likes_q)
    comments = await repo.scalars(
        repo.get_all(Comment)
        .where(Comment.article_id == article_id)
        .options(joinedload(Comment.user))
        .order_by(Comment.created_at, Comment.id)
    )

    liked = bookmarked = False
    if user_id is not None:
        await _require_user(repo, user_id)
        liked = await repo.exists(likes_q.where(ArticleLike.user_id == user_id))
        bookmarked = await is_article_bookmarked_by_user(db, article_id, user_id)
        await log_article_read(db, article_id, user_id)

    return {
        "id": article.id,
        "public_id": article.public_id,
        "author_id": article.author_id,
        "title": article.title,
        "tag_id": article.tag_id,
        "tag_name": article.tag.name if article.tag else None,
        "text": article.text,
        "image_url": article.image_url,
        "read_count": article.read_count,
        "read_time": article.read_time,
        "created_at": _isoformat(article.created_at),
        "comments": [_comment_to_dict(c) for c in comments],
        "like_count": like_count,
        "liked": liked,
        "bookmarked": bookmarked,
    }


async def get_all_articles(
    db: AsyncSession, filters: ArticleFilter | None = None
) -> PaginatedResponse:
    """
    Return a page of published, non-deleted articles.

    ``is_recently_added`` (newest first) takes precedence over
    ``is_top_read`` (most read first); without either, rows come back in
    insertion order.  Page defaults to 1, size to
    ``settings.DEFAULT_PAGE_SIZE``.
    """
    filters = filters or ArticleFilter()
    repo = Repository(db)

    stmt = _published(repo)
    if filters.author_id is not None:
        stmt = stmt.where(Article.author_id == filters.author_id)
    if filters.tag_id is not None:
        stmt = stmt.where(Article.tag_id == filters.tag_id)

    recently_added = bool(filters.is_recently_added)
    top_read = bool(filters.is_top_read)
    if recently_added:
        stmt = stmt.order_by(Article.created_at.desc(), Article.id.desc())
    elif top_read:
        stmt = stmt.order_by(Article.read_count.desc(), Article.id)
    else:
        stmt = stmt.order_by(Article.id)

    def serialize(article: Article) -> dict:
        data = article_to_view(article)
        data["is_recently_added"] = recently_added
        data["is_top_read"] = top_read
        return data

    page, page_size = resolve_page(filters.page, filters.size)
    return await paginate(repo, stmt, page, page_size, serialize, _VIEW_OPTIONS)


async def get_bookmarked_articles(db: AsyncSession, user_id: int) -> list[dict]:
    repo = Repository(db)
    bookmarked_ids = select(ArticleBookmark.article_id).where(ArticleBookmark.user_id == user_id)
    articles = await repo.scalars(
        _visible(repo.get_all(Article).where(Article.id.in_(bookmarked_ids)))
        .options(*_VIEW_OPTIONS)
        .order_by(Article.created_at.desc(), Article.id.desc())
    )
    return [article_to_view(a) for a in articles]


async def get_author_articles(db: AsyncSession, author_id: int) -> list[dict]:
    """Published articles of *author_id*, newest first."""
    repo = Repository(db)
    articles = await repo.scalars(
        _published(repo)
        .where(Article.author_id == author_id)
        .options(*_VIEW_OPTIONS)
        .order_by(Article.created_at.desc(), Article.id.desc())
    )
    return [
        {**article_to_view(a), "approval_status": ApprovalStatus.PUBLISHED.value}
        for a in articles
    ]


def _matches(article: Article, term: str) -> bool:
    author = article.author
    candidates = [article.title, article.tag.name if article.tag else None]
    if author is not None:
        candidates += [author.full_name, author.first_name, author.last_name]
    return any(term in value for value in candidates if value)


async def search_articles(db: AsyncSession, term: str) -> list[dict]:
    """
    Return non-deleted articles whose author full / first / last name,
    title or tag name contains *term*.

    Matching is case-sensitive.  ``LIKE`` narrows the rows in SQL (it is
    case-insensitive on some backends, SQLite among them), then the exact
    substring test runs on the loaded rows.  No ranking is applied.
    """
    repo = Repository(db)
    full_name = AppUser.first_name + " " + AppUser.last_name
    stmt = (
        _visible(repo.get_all(Article))
        .outerjoin(Article.author)
        .outerjoin(Article.tag)
        .where(
            or_(
                full_name.contains(term, autoescape=True),
                AppUser.first_name.contains(term, autoescape=True),
                AppUser.last_name.contains(term, autoescape=True),
                Article.title.contains(term, autoescape=True),
                ArticleTag.name.contains(term, autoescape=True),
            )
        )
        .options(contains_eager(Article.author), contains_eager(Article.tag))
        .order_by(Article.id)
    )
    articles = await repo.scalars(stmt)
    return [article_to_view(a) for a in articles if _matches(a, term)]


async def get_pending_articles(db: AsyncSession) -> list[dict]:
    """Articles waiting for an editor (approval status ``PENDING`` = 1)."""
    q = (
        select(ArticleApproval.article_id, Article)
        .join(Article, Article.id == ArticleApproval.article_id)
        .where(ArticleApproval.status == ApprovalStatus.PENDING.value, Article.deleted_at.is_(None))
        .order_by(ArticleApproval.id)
    )
    result = await db.execute(q)
    return [{"article_id": article_id, **_editable_fields(article)} for article_id, article in result.all()]


# ---------------------------------------------------------------------------
# Moderation and deletion
# ---------------------------------------------------------------------------

async def set_article_report_status(db: AsyncSession, article_id: int, status: str) -> bool:
    """
    Validate a report decision (``approved`` / ``declined``, any case) for
    *article_id*.

    The decision is not stored anywhere yet: the article is saved
    unchanged.  Raises ``InvalidArgumentError`` for any other status and
    ``NotFoundError`` for an unknown article.
    """
    try:
        ReportStatus(str(status or "").strip().lower())
    except ValueError:
        raise InvalidArgumentError(f"Invalid status provided: {status!r}") from None

    repo = Repository(db)
    article = await _require_article(repo, article_id)
    await repo.update(article)
    return True


async def soft_delete_article(db: AsyncSession, article_id: int) -> dict:
    """
    Hide the article from every listing by stamping ``deleted_at``.

    Deleting an already soft-deleted article keeps the original stamp.
    """
    repo = Repository(db)
    article = await _require_article(repo, article_id)

    if article.deleted_at is None:
        article.deleted_at = _utcnow()
        await repo.update(article)
        logger.info("Soft-deleted article %s", article_id)

    return {"deleted_at": _isoformat(article.deleted_at)}


async def delete_article(db: AsyncSession, article_id: int) -> bool:
    """Remove the article row together with everything that references it."""
    repo = Repository(db)
    article = await _require_article(repo, article_id)

    for model in (ArticleApproval, ArticleLike, ArticleBookmark, ArticleRead, Comment):
        await db.execute(delete(model).where(model.article_id == article_id))
    await repo.delete(article)

    logger.info("Deleted article %s", article_id)
    return True


# ---------------------------------------------------------------------------
# Author statistics
# ---------------------------------------------------------------------------

async def get_author_stats(db: AsyncSession, request: AuthorStatsRequest) -> dict:
    """Total article count for each requested author id, in request order."""
    repo = Repository(db)
    stats = []
    for author_id in request.author_ids:
        total = await repo.count(repo.get_all(Article).where(Article.author_id == author_id))
        stats.append({"author_id": author_id, "total_num_of_articles": total})
    return {"author_stats": stats}


async def get_authors(db: AsyncSession) -> list[dict]:
    """Every active user with at least one article, plus their article count."""
    q = (
        select(AppUser, func.count(Article.id))
        .join(Article, Article.author_id == AppUser.id)
        .where(AppUser.deleted_at.is_(None))
        .group_by(AppUser.id)
        .order_by(AppUser.id)
    )
    result = await db.execute(q)
    return [
        {
            "id": user.id,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "email": user.email,
            "squad": user.squad,
            "stack": user.stack,
            "phone_number": user.phone_number,
            "image_url": user.image_url,
            "no_of_articles": count,
        }
        for user, count in result.all()
    ]


# ---------------------------------------------------------------------------
# Likes and bookmarks
# ---------------------------------------------------------------------------

async def like_article(db: AsyncSession, article_id: int, user_id: int) -> dict:
    """Like *article_id* as *user_id*; liking twice changes nothing."""
    repo = Repository(db)
    await _require_article(repo, article_id)
    await _require_user(repo, user_id)

    existing = repo.get_all(ArticleLike).where(
        ArticleLike.article_id == article_id, ArticleLike.user_id == user_id
    )
    if not await repo.exists(existing):
        await repo.add(ArticleLike(user_id=user_id, article_id=article_id))

    return {
        "article_id": article_id,
        "user_id": user_id,
        "like_count": await repo.count(
            repo.get_all(ArticleLike).where(ArticleLike.article_id == article_id)
        ),
    }


async def unlike_article(db: AsyncSession, article_id: int, user_id: int) -> bool:
    """Withdraw a like.  Returns False when there was nothing to withdraw."""
    repo = Repository(db)
    like = await repo.first(
        repo.get_all(ArticleLike).where(
            ArticleLike.article_id == article_id, ArticleLike.user_id == user_id
        )
    )
    if like is None:
        return False
    await repo.delete(like)
    return True


async def get_likes_by_article(db: AsyncSession, article_id: int) -> list[dict]:
    repo = Repository(db)
    likes = await repo.scalars(
        repo.get_all(ArticleLike)
        .where(ArticleLike.article_id == article_id)
        .order_by(ArticleLike.id)
    )
    return [{"user_id": like.user_id, "article_id": like.article_id} for like in likes]


async def bookmark_article(db: AsyncSession, article_id: int, user_id: int) -> dict:
    repo = Repository(db)
    await _require_article(repo, article_id)
    await _require_user(repo, user_id)

    if not await is_article_bookmarked_by_user(db, article_id, user_id):
        await repo.add(ArticleBookmark(user_id=user_id, article_id=article_id))

    return {"article_id": article_id, "user_id": user_id, "bookmarked": True}


async def remove_bookmark(db: AsyncSession, article_id: int, user_id: int) -> bool:
    repo = Repository(db)
    bookmark = await repo.first(
        repo.get_all(ArticleBookmark).where(
            ArticleBookmark.article_id == article_id, ArticleBookmark.user_id == user_id
        )
    )
    if bookmark is None:
        return False
    await repo.delete(bookmark)
    return True


async def is_article_bookmarked_by_user(db: AsyncSession, article_id: int, user_id: int) -> bool:
    repo = Repository(db)
    return await repo.exists(
        repo.get_all(ArticleBookmark).where(
            ArticleBookmark.article_id == article_id, ArticleBookmark.user_id == user_id
        )
    )
