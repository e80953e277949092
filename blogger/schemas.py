import re
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from blogger.exceptions import ValidationError
from blogger.models import ArticleStatus, Category

EMAIL_PATTERN = r"^\S+@\S+\.\S+$"
TAG_MIN_LENGTH = 2
TAG_MAX_LENGTH = 30
PASSWORD_MIN_LENGTH = 6

_TAG_SPLIT_RE = re.compile(r"[,\s]+")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def normalize_tags(raw: str | list[str] | None) -> list[str]:
    """
    Normalise tag input into an ordered, duplicate-free list.

    Accepts either a list of strings or a single string separated by
    commas and/or whitespace.  Each tag is trimmed and lowercased; empty
    entries are dropped.  Raises ``ValueError`` for a tag outside the
    allowed length range.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = [raw]
    parts: list[str] = []
    for item in raw:
        parts.extend(_TAG_SPLIT_RE.split(item))

    tags: list[str] = []
    for part in parts:
        tag = part.strip().lower()
        if not tag:
            continue
        if not TAG_MIN_LENGTH <= len(tag) <= TAG_MAX_LENGTH:
            raise ValueError(
                f"Tag '{tag}' must be between {TAG_MIN_LENGTH} and {TAG_MAX_LENGTH} characters"
            )
        if tag not in tags:
            tags.append(tag)
    return tags


def format_errors(errors: list[dict]) -> list[dict]:
    """Flatten pydantic error dicts into ``{"field", "message"}`` pairs."""
    formatted = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        formatted.append({
            "field": ".".join(loc) or None,
            "message": error.get("msg", "Invalid value"),
        })
    return formatted


def validate_payload(model: type[BaseModel], data: dict[str, Any]) -> BaseModel:
    """
    Validate *data* against *model* before any entity is built from it.

    Violations are collected into a single ``ValidationError`` so callers
    receive every problem at once rather than the first one.
    """
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError("Validation error", format_errors(exc.errors())) from exc


# --- User ---

class SocialLinks(BaseModel):
    twitter: str | None = None
    linkedin: str | None = None
    github: str | None = None
    website: str | None = None


class UserRegister(BaseModel):
    name: str = Field(min_length=2, max_length=50)
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class UserLogin(BaseModel):
    email: str
    password: str

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class UserProfileUpdate(BaseModel):
    name: str | None = Field(None, min_length=2, max_length=50)
    email: str | None = Field(None, max_length=255, pattern=EMAIL_PATTERN)
    bio: str | None = Field(None, max_length=500)
    avatar: str | None = Field(None, max_length=500)
    social_links: SocialLinks | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class PasswordChange(BaseModel):
    current_password: str
    new_password: str


# --- Comment ---

class CommentCreate(BaseModel):
    text: str = Field(max_length=1000)

    @field_validator("text", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value


# --- Article ---

class ArticleCreate(BaseModel):
    title: str = Field(min_length=5, max_length=200)
    content: str = Field(min_length=20)
    excerpt: str | None = Field(None, max_length=500)
    category: Category
    tags: list[str] = []
    # Defaults skip validation, so store the plain value.
    status: ArticleStatus = ArticleStatus.PUBLISHED.value

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("title", "excerpt", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value):
        return normalize_tags(value)


class ArticleUpdate(BaseModel):
    title: str | None = Field(None, min_length=5, max_length=200)
    content: str | None = Field(None, min_length=20)
    excerpt: str | None = Field(None, max_length=500)
    category: Category | None = None
    tags: list[str] | None = None
    status: ArticleStatus | None = None

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("title", "excerpt", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value):
        if value is None:
            return None
        return normalize_tags(value)


# --- Pagination ---

class ArticlePage(BaseModel):
    current_page: int = Field(alias="currentPage")
    total_pages: int = Field(alias="totalPages")
    total_articles: int = Field(alias="totalArticles")
    articles_per_page: int = Field(alias="articlesPerPage")
    articles: list

    model_config = ConfigDict(populate_by_name=True)
