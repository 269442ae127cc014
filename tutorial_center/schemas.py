from pydantic import BaseModel, ConfigDict, Field


# --- Tag ---

class TagBase(BaseModel):
    name: str = Field(max_length=100)


class TagCreate(TagBase):
    pass


class TagResponse(TagBase):
    id: int
    model_config = ConfigDict(from_attributes=True)


# --- User ---

class UserCreate(BaseModel):
    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    email: str = Field(max_length=255)
    phone_number: str | None = None
    image_url: str | None = None
    squad: str | None = None
    stack: str | None = None
    roles: list[str] = []  # role names, created on demand


class UserUpdate(BaseModel):
    """Full profile overwrite: every field must be supplied, nullable ones included."""

    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    email: str = Field(max_length=255)
    phone_number: str | None
    image_url: str | None
    squad: str | None
    stack: str | None


# --- Comment ---

class CommentCreate(BaseModel):
    text: str = Field(min_length=1)


# --- Article ---

class ArticleCreate(BaseModel):
    title: str = Field(max_length=300)
    tag_id: int
    text: str
    image_url: str | None = None


class AuthoredArticleCreate(ArticleCreate):
    public_id: str | None = None


class ArticleUpdate(BaseModel):
    title: str | None = Field(None, max_length=300)
    tag_id: int | None = None
    text: str | None = None
    image_url: str | None = None


class ArticleFilter(BaseModel):
    author_id: int | None = None
    tag_id: int | None = None
    is_recently_added: bool | None = None
    is_top_read: bool | None = None
    page: int | None = Field(None, ge=1)
    size: int | None = Field(None, ge=1)


class AuthorStatsRequest(BaseModel):
    author_ids: list[int]


# --- Pagination ---

class PaginatedResponse(BaseModel):
    items: list
    total: int
    page: int
    page_size: int
    pages: int
