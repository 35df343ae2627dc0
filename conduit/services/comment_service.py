"""
Comment service - comments on an Article.

A comment is created against an article addressed by slug and authored
by the viewer; neither reference is changed afterwards.  Deleting a
comment through an article it does not belong to is a silent no-op, so
stale or repeated delete requests are harmless.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from conduit.models import Comment
from conduit.schemas import CommentCreate
from conduit.services.article_service import article_to_dict, get_article_or_fail
from conduit.services.user_service import Viewer, get_user_or_fail, load_viewer, profile_to_dict


def comment_to_dict(comment: Comment, viewer: Viewer | None = None) -> dict:
    return {
        "id": comment.id,
        "body": comment.body,
        "createdAt": comment.created_at.isoformat() if comment.created_at else None,
        "author": profile_to_dict(comment.author, viewer) if comment.author else None,
    }


async def add_comment(
    db: AsyncSession, viewer_id: int | None, slug: str, data: CommentCreate
) -> dict:
    """
    Attach a new comment by *viewer_id* to the article at *slug*.

    Returns ``{"comment": ..., "article": ...}`` with both rendered for
    the commenter.  The comment is flushed before returning so it already
    has its id and timestamp.
    """
    article = await get_article_or_fail(db, slug)
    author = await get_user_or_fail(db, viewer_id)

    comment = Comment(body=data.body, article_id=article.id, author=author)
    db.add(comment)
    await db.flush()

    viewer = await load_viewer(db, author.id, required=True)
    return {
        "comment": comment_to_dict(comment, viewer),
        "article": article_to_dict(article, viewer),
    }


async def delete_comment(
    db: AsyncSession, viewer_id: int | None, slug: str, comment_id: int
) -> dict:
    """
    Delete comment *comment_id* if it belongs to the article at *slug*.

    The article and the viewer must exist.  A comment that is missing or
    attached to a different article is left alone and no error is raised.
    """
    article = await get_article_or_fail(db, slug)
    user = await get_user_or_fail(db, viewer_id)

    comment = await db.get(Comment, comment_id)
    if comment is not None and comment.article_id == article.id:
        await db.delete(comment)
        await db.flush()

    viewer = await load_viewer(db, user.id, required=True)
    return {"article": article_to_dict(article, viewer)}


async def list_comments(db: AsyncSession, viewer_id: int | None, slug: str) -> dict:
    """Return every comment on the article at *slug*, oldest first."""
    article = await get_article_or_fail(db, slug)
    viewer = await load_viewer(db, viewer_id)

    q = (
        select(Comment)
        .where(Comment.article_id == article.id)
        .options(joinedload(Comment.author))
        .order_by(Comment.created_at.asc(), Comment.id.asc())
    )
    result = await db.execute(q)
    comments = result.unique().scalars().all()
    return {"comments": [comment_to_dict(c, viewer) for c in comments]}
