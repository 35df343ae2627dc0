from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.database import get_db
from conduit.dependencies import get_viewer_id, require_viewer_id
from conduit.schemas import UserCreate
from conduit.services import user_service

router = APIRouter(prefix="/api/v1", tags=["users"])


@router.post("/users", status_code=201)
async def create_user(data: UserCreate, db: AsyncSession = Depends(get_db)):
    try:
        return await user_service.create_user(db, data)
    except IntegrityError:
        raise HTTPException(
            status_code=409,
            detail="A user with this username or email already exists",
        )


@router.get("/profiles/{username}")
async def get_profile(
    username: str,
    viewer_id: int | None = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_profile(db, viewer_id, username)


@router.post("/profiles/{username}/follow")
async def follow_user(
    username: str,
    viewer_id: int = Depends(require_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.follow_user(db, viewer_id, username)


@router.delete("/profiles/{username}/follow")
async def unfollow_user(
    username: str,
    viewer_id: int = Depends(require_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.unfollow_user(db, viewer_id, username)
