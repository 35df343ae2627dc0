from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.database import get_db
from conduit.dependencies import (
    FeedPaginationParams,
    PaginationParams,
    get_viewer_id,
    require_viewer_id,
)
from conduit.schemas import ArticleCreate, ArticleUpdate, CommentCreate
from conduit.services import article_service, comment_service

router = APIRouter(prefix="/api/v1/articles", tags=["articles"])


@router.get("")
async def list_articles(
    tag: str | None = None,
    author: str | None = None,
    favorited: str | None = None,
    pagination: PaginationParams = Depends(),
    viewer_id: int | None = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.list_articles(
        db,
        viewer_id,
        tag=tag,
        author=author,
        favorited=favorited,
        limit=pagination.limit,
        offset=pagination.offset,
    )


@router.get("/feed")
async def list_feed(
    pagination: FeedPaginationParams = Depends(),
    viewer_id: int = Depends(require_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.list_feed(
        db, viewer_id, limit=pagination.limit, offset=pagination.offset
    )


@router.get("/{slug}")
async def get_article(
    slug: str,
    viewer_id: int | None = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    result = await article_service.get_article(db, viewer_id, slug)
    if result["article"] is None:
        raise HTTPException(status_code=404, detail="Article not found")
    return result


@router.post("", status_code=201)
async def create_article(
    data: ArticleCreate,
    viewer_id: int = Depends(require_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.create_article(db, viewer_id, data)


@router.put("/{slug}")
async def update_article(
    slug: str,
    data: ArticleUpdate,
    viewer_id: int = Depends(require_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.update_article(db, viewer_id, slug, data)


@router.delete("/{slug}", status_code=204, dependencies=[Depends(require_viewer_id)])
async def delete_article(slug: str, db: AsyncSession = Depends(get_db)):
    deleted = await article_service.delete_article(db, slug)
    if not deleted:
        raise HTTPException(status_code=404, detail="Article not found")


@router.post("/{slug}/favorite")
async def favorite_article(
    slug: str,
    viewer_id: int = Depends(require_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.favorite_article(db, viewer_id, slug)


@router.delete("/{slug}/favorite")
async def unfavorite_article(
    slug: str,
    viewer_id: int = Depends(require_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await article_service.unfavorite_article(db, viewer_id, slug)


@router.get("/{slug}/comments")
async def list_comments(
    slug: str,
    viewer_id: int | None = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.list_comments(db, viewer_id, slug)


@router.post("/{slug}/comments", status_code=201)
async def add_comment(
    slug: str,
    data: CommentCreate,
    viewer_id: int = Depends(require_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.add_comment(db, viewer_id, slug, data)


@router.delete("/{slug}/comments/{comment_id}")
async def delete_comment(
    slug: str,
    comment_id: int,
    viewer_id: int = Depends(require_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.delete_comment(db, viewer_id, slug, comment_id)
