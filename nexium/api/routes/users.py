from typing import Annotated

from fastapi import APIRouter, Depends

from nexium.api.dependencies import get_directory_service
from nexium.schemas.users import (
    AddUserResponse,
    HistoryResponse,
    MessageResponse,
    ProfilesResponse,
    RemoveUserResponse,
    UserIdListResponse,
    UserIdRequest,
)
from nexium.services.directory_service import DirectoryService

router = APIRouter(prefix="/api", tags=["Users"])

Service = Annotated[DirectoryService, Depends(get_directory_service)]


@router.get("/id", response_model=MessageResponse)
async def list_ids_as_text(service: Service) -> MessageResponse:
    """Active ids joined by single spaces, in directory order."""
    ids = await service.list_ids()
    return MessageResponse(message=" ".join(ids))


@router.get("/users", response_model=ProfilesResponse)
async def list_profiles(service: Service) -> ProfilesResponse:
    """Fetch fresh profiles for every active id.

    Cached usernames are refreshed as a side effect. Any failed profile fetch
    fails the whole request with 500.
    """
    profiles = await service.refresh_profiles()
    return ProfilesResponse(users=profiles)


@router.get("/users/list", response_model=UserIdListResponse)
async def list_user_ids(service: Service) -> UserIdListResponse:
    return UserIdListResponse(users=await service.list_ids())


@router.get("/users/history", response_model=HistoryResponse)
async def list_history(service: Service) -> HistoryResponse:
    """Every record ever tracked, soft-removed ones included."""
    return HistoryResponse(users=await service.history())


@router.post("/users/add", response_model=AddUserResponse)
async def add_user(service: Service, payload: UserIdRequest | None = None) -> AddUserResponse:
    """Track a new user id.

    Raises:
        ValidationAppError: 400 for a missing/malformed id or a failed profile lookup.
        ConflictAppError: 409 when the id is already tracked.
    """
    added, users = await service.add_user(payload.userid if payload else None)
    return AddUserResponse(users=users, added_user=added)


@router.delete("/users/remove", response_model=RemoveUserResponse)
async def remove_user(service: Service, payload: UserIdRequest | None = None) -> RemoveUserResponse:
    """Stop tracking a user id (soft delete).

    Raises:
        ValidationAppError: 400 when no id is provided.
        NotFoundAppError: 404 when the id is not actively tracked.
    """
    removed, users = await service.remove_user(payload.userid if payload else None)
    return RemoveUserResponse(users=users, removed_user_id=removed.id)
