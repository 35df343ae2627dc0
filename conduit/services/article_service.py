"""
Article service - business logic for the Article aggregate.

Design notes
------------
- Listings are built as one filtered ``SELECT`` left-joined to the author.
  The total is counted from the same filtered statement before LIMIT /
  OFFSET are applied, so ``articlesCount`` is always the full match count.
- Results are ordered newest first (``created_at`` desc, id desc as a
  tiebreak).  Feeds rely on this ordering.
- Filters that name a user (``author``, ``favorited``) short-circuit to an
  empty listing when the user does not exist instead of raising.
- ``favorites_count`` is only ever changed with a SQL-side
  ``favorites_count + 1`` / ``- 1`` issued in the same transaction as the
  membership row it accounts for.  A decrement happens only when a
  membership row was actually deleted, and never takes the counter below
  zero.
- Service functions flush but do not commit; the transaction boundary is
  owned by the ``get_db`` dependency in the router layer.
"""
import json
import re
import time

from sqlalchemy import Text, delete, func, insert, select, type_coerce, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager, joinedload

from conduit.exceptions import NotFoundError, ValidationError
from conduit.models import Article, user_favorites, user_follows
from conduit.schemas import ArticleCreate, ArticleUpdate
from conduit.services.tag_service import normalize_tags, register_tags
from conduit.services.user_service import (
    Viewer,
    get_user_by_username,
    get_user_or_fail,
    load_viewer,
    profile_to_dict,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_SLUG_STRIP_RE = re.compile(r"[^\w\s-]")
_SLUG_SPACE_RE = re.compile(r"[\s_]+")
_SLUG_DASH_RE = re.compile(r"-+")

_REQUIRED_FIELDS = ("title", "description", "body")


def slugify(text: str) -> str:
    """Return a URL-safe, lowercase slug derived from *text*."""
    text = _SLUG_STRIP_RE.sub("", text.lower().strip())
    text = _SLUG_SPACE_RE.sub("-", text)
    return _SLUG_DASH_RE.sub("-", text).strip("-")


async def unique_slug(db: AsyncSession, title: str) -> str:
    """
    Slugify *title*, appending a Unix timestamp suffix when the slug is
    already taken (rare, but possible for identical titles).
    """
    slug = slugify(title) or "article"
    existing = await db.execute(select(Article.id).where(Article.slug == slug))
    if existing.first() is None:
        return slug

    slug = f"{slug}-{int(time.time())}"
    # Two identical titles inside the same second.
    suffix = 1
    candidate = slug
    while (await db.execute(select(Article.id).where(Article.slug == candidate))).first():
        suffix += 1
        candidate = f"{slug}-{suffix}"
    return candidate


def _page_param(name: str, value) -> int | None:
    """
    Validate a LIMIT / OFFSET value.

    ``None`` means "not supplied".  Anything that is not a non-negative
    integer (or a string of digits) is rejected instead of being coerced.
    """
    if value is None:
        return None
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value)
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    raise ValidationError(
        f"{name} must be a non-negative integer, got {value!r}",
        fields=[name],
        reason="must be a non-negative integer",
    )


def _empty_listing() -> dict:
    return {"articles": [], "articlesCount": 0}


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def article_to_dict(article: Article, viewer: Viewer | None = None) -> dict:
    """Serialise *article* as seen by *viewer* (None for anonymous)."""
    return {
        "slug": article.slug,
        "title": article.title,
        "description": article.description,
        "body": article.body,
        "tagList": list(article.tag_list or []),
        "createdAt": article.created_at.isoformat() if article.created_at else None,
        "updatedAt": article.updated_at.isoformat() if article.updated_at else None,
        "favorited": viewer is not None and article.id in viewer.favorite_ids,
        "favoritesCount": article.favorites_count,
        "author": profile_to_dict(article.author, viewer) if article.author else None,
    }


# ---------------------------------------------------------------------------
# Query helpers
# ---------------------------------------------------------------------------

def _base_listing():
    return select(Article).outerjoin(Article.author)


async def _paginate(
    db: AsyncSession,
    stmt,
    viewer: Viewer | None,
    limit: int | None,
    offset: int | None,
) -> dict:
    """
    Run *stmt* as a listing: count all matches, then fetch the requested
    page newest first.
    """
    count_q = select(func.count()).select_from(stmt.subquery())
    total: int = (await db.execute(count_q)).scalar_one()

    page_q = stmt.options(contains_eager(Article.author)).order_by(
        Article.created_at.desc(), Article.id.desc()
    )
    if limit is not None:
        page_q = page_q.limit(limit)
    if offset is not None:
        page_q = page_q.offset(offset)

    result = await db.execute(page_q)
    articles = result.unique().scalars().all()
    return {
        "articles": [article_to_dict(a, viewer) for a in articles],
        "articlesCount": total,
    }


async def get_article_or_fail(db: AsyncSession, slug: str) -> Article:
    """Load the article addressed by *slug* with its author, or raise."""
    q = select(Article).where(Article.slug == slug).options(joinedload(Article.author))
    result = await db.execute(q)
    article = result.unique().scalar_one_or_none()
    if article is None:
        raise NotFoundError("Article", slug)
    return article


# ---------------------------------------------------------------------------
# Public service functions - reads
# ---------------------------------------------------------------------------

async def list_articles(
    db: AsyncSession,
    viewer_id: int | None = None,
    *,
    tag: str | None = None,
    author: str | None = None,
    favorited: str | None = None,
    limit=None,
    offset=None,
) -> dict:
    """
    Return ``{"articles": [...], "articlesCount": n}`` for the global
    listing.

    Filters are conjunctive and applied in the order tag, author,
    favorited.  *tag* is a substring match over the article's stored tag
    list; *author* and *favorited* are exact usernames.
    """
    limit = _page_param("limit", limit)
    offset = _page_param("offset", offset)

    viewer = await load_viewer(db, viewer_id)
    stmt = _base_listing()

    if tag is not None:
        # tag_list is stored as JSON text; the needle is encoded the same way.
        needle = json.dumps(tag, ensure_ascii=False)[1:-1]
        stmt = stmt.where(type_coerce(Article.tag_list, Text).contains(needle, autoescape=True))

    if author is not None:
        author_user = await get_user_by_username(db, author)
        if author_user is None:
            return _empty_listing()
        stmt = stmt.where(Article.author_id == author_user.id)

    if favorited is not None:
        fan = await get_user_by_username(db, favorited)
        if fan is None:
            return _empty_listing()
        stmt = stmt.where(
            Article.id.in_(
                select(user_favorites.c.article_id).where(user_favorites.c.user_id == fan.id)
            )
        )

    return await _paginate(db, stmt, viewer, limit, offset)


async def list_feed(
    db: AsyncSession,
    viewer_id: int | None,
    *,
    limit=None,
    offset=None,
) -> dict:
    """
    Return articles written by the users *viewer_id* follows, newest
    first.  An anonymous or unknown viewer follows nobody, so the feed is
    empty.
    """
    limit = _page_param("limit", limit)
    offset = _page_param("offset", offset)

    viewer = await load_viewer(db, viewer_id)
    if viewer is None:
        return _empty_listing()

    stmt = _base_listing().where(
        Article.author_id.in_(
            select(user_follows.c.followee_id).where(user_follows.c.follower_id == viewer.id)
        )
    )
    return await _paginate(db, stmt, viewer, limit, offset)


async def get_article(db: AsyncSession, viewer_id: int | None, slug: str) -> dict:
    """
    Return ``{"article": ...}`` for *slug*, or ``{"article": None}`` when
    no article matches.  A viewer id that is supplied but unknown raises
    ``NotFoundError``.
    """
    viewer = await load_viewer(db, viewer_id, required=viewer_id is not None)
    q = select(Article).where(Article.slug == slug).options(joinedload(Article.author))
    result = await db.execute(q)
    article = result.unique().scalar_one_or_none()
    return {"article": article_to_dict(article, viewer) if article else None}


# ---------------------------------------------------------------------------
# Public service functions - writes
# ---------------------------------------------------------------------------

async def create_article(db: AsyncSession, viewer_id: int | None, data: ArticleCreate) -> dict:
    """
    Create an article authored by *viewer_id*.

    Title, description and body must all be non-empty; every missing one
    is named in the ``ValidationError``.  The article is flushed first so
    it has an identity, then any tag name not yet in the vocabulary gets a
    ``Tag`` row.  Both steps run in one savepoint: if either fails it is
    rolled back, so neither the article nor new tags survive, while
    earlier writes in the caller's session are kept.
    """
    missing = [name for name in _REQUIRED_FIELDS if not (getattr(data, name) or "").strip()]
    if missing:
        raise ValidationError(
            f"{', '.join(missing)} {'is' if len(missing) == 1 else 'are'} required",
            fields=missing,
        )

    author = await get_user_or_fail(db, viewer_id)
    tag_names = normalize_tags(data.tag_list)

    slug = await unique_slug(db, data.title)
    async with db.begin_nested():
        article = Article(
            slug=slug,
            title=data.title,
            description=data.description,
            body=data.body,
            tag_list=tag_names,
            author=author,
        )
        db.add(article)
        await db.flush()
        await register_tags(db, tag_names)

    viewer = await load_viewer(db, author.id, required=True)
    return {"article": article_to_dict(article, viewer)}


async def update_article(
    db: AsyncSession, viewer_id: int | None, slug: str, data: ArticleUpdate
) -> dict:
    """
    Overwrite-merge the supplied fields onto the article at *slug*.

    Only fields present in the payload are touched.  The slug stays as it
    was minted at creation even if the title changes, and the author is
    never reassigned.  A new tag list is normalised the same way as on
    creation and any new names join the vocabulary.
    """
    article = await get_article_or_fail(db, slug)

    changes = data.model_dump(exclude_unset=True)
    blank = [
        name
        for name in _REQUIRED_FIELDS
        if name in changes and not (changes[name] or "").strip()
    ]
    if blank:
        raise ValidationError(
            f"{', '.join(blank)} cannot be blank",
            fields=blank,
        )

    if "tag_list" in changes:
        tag_names = normalize_tags(changes.pop("tag_list"))
        article.tag_list = tag_names
        await register_tags(db, tag_names)

    for field, value in changes.items():
        setattr(article, field, value)

    await db.flush()
    viewer = await load_viewer(db, viewer_id)
    return {"article": article_to_dict(article, viewer)}


async def delete_article(db: AsyncSession, slug: str) -> int:
    """
    Delete the article at *slug* with a single storage-level ``DELETE``
    and return the number of rows removed (0 or 1).

    Comments and favorite rows go with it through the ``ON DELETE
    CASCADE`` foreign keys, not through the ORM.
    """
    result = await db.execute(
        delete(Article).where(Article.slug == slug).execution_options(synchronize_session=False)
    )
    await db.flush()
    return result.rowcount


async def favorite_article(db: AsyncSession, viewer_id: int | None, slug: str) -> dict:
    """
    Add the article to the viewer's favorites and bump its counter by one.
    Favoriting an article already favorited changes nothing.
    """
    article = await get_article_or_fail(db, slug)
    user = await get_user_or_fail(db, viewer_id)

    member = await db.execute(
        select(user_favorites.c.user_id).where(
            user_favorites.c.user_id == user.id,
            user_favorites.c.article_id == article.id,
        )
    )
    if member.first() is None:
        await db.execute(insert(user_favorites).values(user_id=user.id, article_id=article.id))
        await db.execute(
            update(Article)
            .where(Article.id == article.id)
            .values(favorites_count=Article.favorites_count + 1)
            .execution_options(synchronize_session=False)
        )
        await db.flush()
        await db.refresh(article, ["favorites_count", "updated_at"])

    viewer = await load_viewer(db, user.id, required=True)
    return {"article": article_to_dict(article, viewer)}


async def unfavorite_article(db: AsyncSession, viewer_id: int | None, slug: str) -> dict:
    """
    Remove the article from the viewer's favorites and drop its counter by
    one.  Unfavoriting an article that is not favorited changes nothing.
    """
    article = await get_article_or_fail(db, slug)
    user = await get_user_or_fail(db, viewer_id)

    removed = await db.execute(
        delete(user_favorites).where(
            user_favorites.c.user_id == user.id,
            user_favorites.c.article_id == article.id,
        )
    )
    if removed.rowcount:
        await db.execute(
            update(Article)
            .where(Article.id == article.id, Article.favorites_count > 0)
            .values(favorites_count=Article.favorites_count - 1)
            .execution_options(synchronize_session=False)
        )
        await db.flush()
        await db.refresh(article, ["favorites_count", "updated_at"])

    viewer = await load_viewer(db, user.id, required=True)
    return {"article": article_to_dict(article, viewer)}
