from pydantic import BaseModel


class Pagination(BaseModel):
    page: int
    limit: int
    total: int


class ErrorResponse(BaseModel):
    detail: str


class RateLimitedResponse(ErrorResponse):
    remaining: int
