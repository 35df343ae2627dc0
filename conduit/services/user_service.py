"""
User service - user lookup, viewer context, and the follow relation.

Every rendered article, comment, or profile carries flags that depend on
who is looking (``favorited``, ``following``).  ``load_viewer`` gathers
that once per operation into a ``Viewer`` so the serialisers never touch
the database.
"""
from dataclasses import dataclass, field

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.exceptions import NotFoundError, ValidationError
from conduit.models import User, user_favorites, user_follows
from conduit.schemas import UserCreate


@dataclass(frozen=True)
class Viewer:
    """The user a response is rendered for, with their relation id sets."""

    user: User
    favorite_ids: frozenset[int] = field(default_factory=frozenset)
    following_ids: frozenset[int] = field(default_factory=frozenset)

    @property
    def id(self) -> int:
        return self.user.id


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def profile_to_dict(user: User, viewer: Viewer | None = None) -> dict:
    """Serialise *user* as a public profile seen by *viewer*."""
    return {
        "username": user.username,
        "bio": user.bio,
        "image": user.image,
        "following": viewer is not None and user.id in viewer.following_ids,
    }


def _user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "bio": user.bio,
        "image": user.image,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

async def get_user(db: AsyncSession, user_id: int | None) -> User | None:
    if user_id is None:
        return None
    return await db.get(User, user_id)


async def get_user_or_fail(db: AsyncSession, user_id: int | None) -> User:
    user = await get_user(db, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def load_viewer(
    db: AsyncSession, viewer_id: int | None, required: bool = False
) -> Viewer | None:
    """
    Build the ``Viewer`` for *viewer_id*.

    Returns None for an anonymous request.  An id that matches no user is
    treated as anonymous unless *required* is set, in which case
    ``NotFoundError`` is raised.

    The id sets are read straight from the association tables rather than
    from ORM collections so they reflect writes made earlier in the same
    session.
    """
    if viewer_id is None:
        if required:
            raise NotFoundError("User")
        return None

    user = await get_user_or_fail(db, viewer_id) if required else await get_user(db, viewer_id)
    if user is None:
        return None

    favorites = await db.execute(
        select(user_favorites.c.article_id).where(user_favorites.c.user_id == user.id)
    )
    following = await db.execute(
        select(user_follows.c.followee_id).where(user_follows.c.follower_id == user.id)
    )
    return Viewer(
        user=user,
        favorite_ids=frozenset(favorites.scalars().all()),
        following_ids=frozenset(following.scalars().all()),
    )


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def create_user(db: AsyncSession, data: UserCreate) -> dict:
    """
    Create a new user and return its serialised dict.

    Username and email uniqueness is enforced by the database; the router
    turns the resulting ``IntegrityError`` into a 409.
    """
    user = User(
        username=data.username,
        email=data.email,
        bio=data.bio,
        image=data.image,
    )
    db.add(user)
    await db.flush()
    return _user_to_dict(user)


async def get_profile(db: AsyncSession, viewer_id: int | None, username: str) -> dict:
    user = await get_user_by_username(db, username)
    if user is None:
        raise NotFoundError("Profile", username)
    viewer = await load_viewer(db, viewer_id)
    return {"profile": profile_to_dict(user, viewer)}


async def follow_user(db: AsyncSession, viewer_id: int | None, username: str) -> dict:
    """
    Make the viewer follow *username*.  Following someone already
    followed is a no-op.
    """
    follower = await get_user_or_fail(db, viewer_id)
    followee = await get_user_by_username(db, username)
    if followee is None:
        raise NotFoundError("Profile", username)
    if followee.id == follower.id:
        raise ValidationError(
            "You cannot follow yourself", fields=["username"], reason="cannot follow yourself"
        )

    exists = await db.execute(
        select(user_follows.c.follower_id).where(
            user_follows.c.follower_id == follower.id,
            user_follows.c.followee_id == followee.id,
        )
    )
    if exists.first() is None:
        await db.execute(
            insert(user_follows).values(follower_id=follower.id, followee_id=followee.id)
        )
        await db.flush()

    viewer = await load_viewer(db, follower.id, required=True)
    return {"profile": profile_to_dict(followee, viewer)}


async def unfollow_user(db: AsyncSession, viewer_id: int | None, username: str) -> dict:
    follower = await get_user_or_fail(db, viewer_id)
    followee = await get_user_by_username(db, username)
    if followee is None:
        raise NotFoundError("Profile", username)

    await db.execute(
        delete(user_follows).where(
            user_follows.c.follower_id == follower.id,
            user_follows.c.followee_id == followee.id,
        )
    )
    await db.flush()

    viewer = await load_viewer(db, follower.id, required=True)
    return {"profile": profile_to_dict(followee, viewer)}
