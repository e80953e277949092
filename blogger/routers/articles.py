from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from blogger.database import get_db
from blogger.dependencies import (
    ArticleId,
    ArticleListParams,
    PageParams,
    UserId,
    get_current_user,
    get_optional_user,
)
from blogger.exceptions import ValidationError
from blogger.media import ImageUpload, MediaHost, get_media_host
from blogger.models import User
from blogger.schemas import ArticleCreate, ArticlePage, ArticleUpdate, CommentCreate, validate_payload
from blogger.services import article_service, comment_service, listing_service

router = APIRouter(prefix="/api/articles", tags=["articles"])


def _form_fields(**fields) -> dict:
    """Keep only the form fields the client actually sent."""
    return {name: value for name, value in fields.items() if value is not None}


async def _read_image(file: UploadFile | None) -> ImageUpload | None:
    if file is None or not file.filename:
        return None
    if file.content_type and not file.content_type.startswith("image/"):
        raise ValidationError(
            "Only image files are allowed",
            [{"field": "file", "message": "Only image files are allowed"}],
        )
    data = await file.read()
    if not data:
        return None
    return ImageUpload(filename=file.filename, data=data)


@router.get("", response_model=ArticlePage)
async def list_articles(
    params: ArticleListParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await listing_service.list_articles(
        db,
        page=params.page,
        limit=params.limit,
        category=params.category,
        tags=params.tags,
        status=params.status,
        author_id=params.author_id,
        search=params.search,
        sort=params.sort,
    )


@router.get("/author/{author_id}", response_model=ArticlePage)
async def list_author_articles(
    author_id: UserId,
    params: PageParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await listing_service.list_author_articles(
        db, author_id, page=params.page, limit=params.limit
    )


@router.get("/{article_id}")
async def get_article(
    article_id: ArticleId,
    viewer: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.get_article(db, article_id, viewer)


@router.post("", status_code=201)
async def create_article(
    title: str | None = Form(None),
    content: str | None = Form(None),
    excerpt: str | None = Form(None),
    category: str | None = Form(None),
    tags: list[str] | None = Form(None),
    status: str | None = Form(None),
    file: UploadFile | None = File(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    media: MediaHost = Depends(get_media_host),
):
    data = validate_payload(
        ArticleCreate,
        _form_fields(
            title=title, content=content, excerpt=excerpt,
            category=category, tags=tags, status=status,
        ),
    )
    image = await _read_image(file)
    if image is None:
        raise ValidationError(
            "No image file uploaded",
            [{"field": "file", "message": "An image file is required"}],
        )
    return await article_service.create_article(db, media, current_user, data, image)


@router.put("/{article_id}")
async def update_article(
    article_id: ArticleId,
    title: str | None = Form(None),
    content: str | None = Form(None),
    excerpt: str | None = Form(None),
    category: str | None = Form(None),
    tags: list[str] | None = Form(None),
    status: str | None = Form(None),
    file: UploadFile | None = File(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    media: MediaHost = Depends(get_media_host),
):
    data = validate_payload(
        ArticleUpdate,
        _form_fields(
            title=title, content=content, excerpt=excerpt,
            category=category, tags=tags, status=status,
        ),
    )
    image = await _read_image(file)
    return await article_service.update_article(
        db, media, current_user, article_id, data, image
    )


@router.delete("/{article_id}")
async def delete_article(
    article_id: ArticleId,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    media: MediaHost = Depends(get_media_host),
):
    deleted = await article_service.delete_article(db, media, current_user, article_id)
    return {"message": "Article deleted successfully", "deleted_article": deleted}


@router.patch("/{article_id}/like")
async def toggle_like(
    article_id: ArticleId,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.toggle_like(db, current_user, article_id)


@router.post("/{article_id}/comments", status_code=201)
async def add_comment(
    article_id: ArticleId,
    data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await comment_service.add_comment(db, current_user, article_id, data)
    return {"message": "Comment added successfully", **result}
