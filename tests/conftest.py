"""
Test infrastructure for the tutorial center services.

Strategy
--------
- SQLite in-memory via aiosqlite eliminates the need for a running Postgres
  instance in CI, keeping the suite fast and self-contained.
- StaticPool forces all async tasks to share the same in-memory database
  connection, which is required because SQLite in-memory databases are
  connection-scoped; a new connection would see an empty database.
- All tables are created fresh before each test and dropped after, giving
  each test a clean isolated state without needing transactions or truncation.
- The Redis cache is disabled by setting cache._redis = None; the CacheManager
  already handles a None _redis gracefully (no-op reads and writes), so tests
  exercise real service logic without any Redis infrastructure.  Tests that
  need cache behaviour opt into the ``fake_redis`` fixture.
- Factory fixtures insert rows straight through the ORM so each test can
  set up exactly the state it needs (approval status, timestamps, authors).
"""
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

import tutorial_center.models  # noqa: F401  (registers every table on Base.metadata)
from tutorial_center.cache import cache
from tutorial_center.database import Base
from tutorial_center.models import AppUser, ApprovalStatus, Article, ArticleApproval, ArticleTag

# ---------------------------------------------------------------------------
# Test database engine — SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    cache._redis = None
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """Yield a live AsyncSession for calling services directly."""
    async with async_session_test() as session:
        yield session


@pytest.fixture
def make_user(db_session: AsyncSession):
    counter = {"n": 0}

    async def _make_user(first_name: str = "Ada", last_name: str = "Lovelace", **fields) -> AppUser:
        counter["n"] += 1
        fields.setdefault("email", f"user{counter['n']}@example.com")
        user = AppUser(first_name=first_name, last_name=last_name, **fields)
        db_session.add(user)
        await db_session.flush()
        return user

    return _make_user


@pytest.fixture
def make_tag(db_session: AsyncSession):
    async def _make_tag(name: str = "Python") -> ArticleTag:
        tag = ArticleTag(name=name)
        db_session.add(tag)
        await db_session.flush()
        return tag

    return _make_tag


@pytest.fixture
def make_article(db_session: AsyncSession):
    """
    Insert an article with its approval row.

    ``age_minutes`` backdates ``created_at`` so ordering tests do not
    depend on clock resolution.
    """

    async def _make_article(
        tag: ArticleTag,
        title: str = "Article",
        text: str = "Some text",
        author: AppUser | None = None,
        status: ApprovalStatus = ApprovalStatus.PUBLISHED,
        read_count: int = 0,
        age_minutes: int = 0,
        deleted: bool = False,
    ) -> Article:
        now = datetime.now(timezone.utc)
        article = Article(
            title=title,
            text=text,
            tag_id=tag.id,
            author_id=author.id if author else None,
            read_count=read_count,
            read_time="1 mins",
            created_at=now - timedelta(minutes=age_minutes),
            deleted_at=now if deleted else None,
        )
        db_session.add(article)
        await db_session.flush()
        db_session.add(ArticleApproval(article_id=article.id, status=status.value))
        await db_session.flush()
        return article

    return _make_article


class DictRedis:
    """In-memory stand-in for the redis.asyncio client used by CacheManager."""

    def __init__(self):
        self.data = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value

    async def scan_iter(self, match=None):
        prefix = match.rstrip("*")
        for key in list(self.data):
            if key.startswith(prefix):
                yield key

    async def delete(self, *keys):
        for key in keys:
            self.data.pop(key, None)


@pytest.fixture
def fake_redis():
    """Route the shared cache through a DictRedis for the duration of a test."""
    fake = DictRedis()
    cache._redis = fake
    yield fake
    cache._redis = None
