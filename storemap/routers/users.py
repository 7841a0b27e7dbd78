"""Users router - user list, deletion, own profile and last-login stamp"""

from fastapi import APIRouter, Body, Depends
from typing import Annotated
import logging
import uuid

from ..schemas.users import (
    UserResponse,
    UserListResponse,
    DeleteUsersRequest,
    DeleteUsersResponse,
    ProfileUpdateRequest,
    SuccessResponse,
)
from ..core.exceptions import DatabaseUnavailableError, NotFoundError, PersistenceError, ValidationError
from ..core.security import decode_data_url
from ..dependencies import get_current_user, get_user_repository
from ..models.updates import ClearImage, SetImageBlob, SetImageUrl, UsernameUpdate
from ..models.user import User
from ..services.user_repository import UserRepository

logger = logging.getLogger(__name__)

router = APIRouter()


def to_response(user: User) -> UserResponse:
    return UserResponse(**user.to_dict())


def build_profile_updates(payload: ProfileUpdateRequest) -> list:
    """Translate a profile edit into ordered updates. Image: delete > blob > url."""
    updates = []
    if payload.username is not None:
        updates.append(UsernameUpdate(payload.username))

    if payload.delete_image:
        updates.append(ClearImage())
    elif payload.image_blob:
        try:
            updates.append(SetImageBlob(decode_data_url(payload.image_blob)))
        except ValueError as e:
            raise ValidationError(str(e))
    elif payload.image_url is not None:
        updates.append(SetImageUrl(payload.image_url))
    return updates


@router.get("/users", response_model=UserListResponse)
async def list_users(
    current_user: Annotated[User, Depends(get_current_user)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
):
    try:
        result = await users.list_users()
    except PersistenceError as e:
        raise DatabaseUnavailableError(e)
    return UserListResponse(users=[to_response(user) for user in result], total=len(result))


@router.delete("/users", response_model=DeleteUsersResponse)
async def delete_users(
    current_user: Annotated[User, Depends(get_current_user)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
    payload: DeleteUsersRequest = Body(...),
):
    try:
        ids = [uuid.UUID(user_id) for user_id in payload.ids]
    except ValueError:
        raise ValidationError("Invalid user id")

    try:
        deleted = await users.delete_users(ids)
    except PersistenceError as e:
        raise DatabaseUnavailableError(e)

    logger.info(f"[USERS] {current_user.email} deleted {deleted} users")
    return DeleteUsersResponse(deleted_count=deleted)


@router.get("/user/profile", response_model=UserResponse)
async def get_profile(current_user: Annotated[User, Depends(get_current_user)]):
    return to_response(current_user)


@router.patch("/user/profile", response_model=UserResponse)
async def update_profile(
    current_user: Annotated[User, Depends(get_current_user)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
    payload: ProfileUpdateRequest = Body(...),
):
    """
    Edit own username and avatar.

    An uploaded image replaces the URL and vice versa; delete_image clears both.
    """
    updates = build_profile_updates(payload)
    try:
        user = await users.update_profile(current_user.id, *updates)
    except PersistenceError as e:
        raise DatabaseUnavailableError(e)
    if user is None:
        raise NotFoundError("User not found in database")
    return to_response(user)


@router.post("/user/last-login", response_model=SuccessResponse)
async def touch_last_login(
    current_user: Annotated[User, Depends(get_current_user)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
):
    try:
        touched = await users.touch_last_login(current_user.id)
    except PersistenceError as e:
        raise DatabaseUnavailableError(e)
    if not touched:
        raise NotFoundError("User not found in database")
    return SuccessResponse()
