from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.dependencies import get_token_payload, get_user_directory
from app.schemas import ErrorResponse, UserListResponse, UserRead
from app.services import UserDirectory
from app.services import exceptions as service_exceptions

router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(get_token_payload)])

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@router.get("", response_model=UserListResponse)
def list_users(
    page: int = Query(default=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE),
    search: str | None = Query(default=None),
    directory: UserDirectory = Depends(get_user_directory),
) -> UserListResponse:
    page = max(page, 1)
    if limit < 1:
        limit = DEFAULT_PAGE_SIZE
    limit = min(limit, MAX_PAGE_SIZE)

    users, total = directory.list_users(page=page, limit=limit, search=search)
    return UserListResponse(
        data=[UserRead.model_validate(user) for user in users],
        pagination={"page": page, "limit": limit, "total": total},
    )


@router.get(
    "/{user_id}",
    response_model=UserRead,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
)
def get_user(user_id: int, directory: UserDirectory = Depends(get_user_directory)) -> UserRead:
    try:
        user = directory.get_by_id(user_id)
    except service_exceptions.NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="user not found") from exc
    return UserRead.model_validate(user)
