from datetime import datetime

from pydantic import BaseModel, ConfigDict

from .common import Pagination


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    phone: str
    registered_at: datetime


class UserListResponse(BaseModel):
    data: list[UserRead]
    pagination: Pagination
