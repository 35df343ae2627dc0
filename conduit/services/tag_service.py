"""
Tag service - the global tag vocabulary.

Articles keep their own denormalized ``tag_list``; the ``tags`` table is a
separate deduplicated dictionary of every name ever used.  The two are not
linked by foreign key and nothing here tries to keep old vocabulary entries
in sync with article edits or deletions.
"""
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.models import Tag


def normalize_tags(tag_list: str | Iterable[str] | None) -> list[str]:
    """
    Turn user input into a clean list of tag names.

    Accepts a comma-separated string or an iterable of strings.  Entries
    are trimmed, empty entries dropped, and duplicates removed keeping the
    first occurrence, so ``"foo, bar, foo"`` becomes ``["foo", "bar"]``.
    Comparison is case sensitive.
    """
    if tag_list is None:
        return []
    if isinstance(tag_list, str):
        raw = tag_list.split(",")
    else:
        raw = list(tag_list)
    names = (name.strip() for name in raw)
    return list(dict.fromkeys(name for name in names if name))


async def add_tag(db: AsyncSession, name: str) -> Tag | None:
    """
    Insert a single ``Tag`` row for *name* inside a savepoint.

    Returns None instead of failing when the name already exists, e.g.
    because a concurrent transaction inserted it after our lookup.
    """
    tag = Tag(tag=name)
    try:
        async with db.begin_nested():
            db.add(tag)
            await db.flush()
    except IntegrityError:
        return None
    return tag


async def register_tags(db: AsyncSession, names: Iterable[str]) -> list[Tag]:
    """
    Insert a ``Tag`` row for every name in *names* not already known.

    Existing names are left untouched.  Runs inside the caller's
    transaction and returns only the newly created rows.
    """
    names = list(dict.fromkeys(names))
    if not names:
        return []

    result = await db.execute(select(Tag.tag).where(Tag.tag.in_(names)))
    existing = set(result.scalars().all())

    created = []
    for name in names:
        if name in existing:
            continue
        tag = await add_tag(db, name)
        if tag is not None:
            created.append(tag)
    return created


async def list_tags(db: AsyncSession) -> list[str]:
    """Return every known tag name, alphabetically."""
    result = await db.execute(select(Tag.tag).order_by(Tag.tag))
    return list(result.scalars().all())
