from fastapi import APIRouter

from . import auth, health, user


def get_api_router() -> APIRouter:
    router = APIRouter()
    router.include_router(health.router)
    router.include_router(auth.router)
    router.include_router(user.router)
    return router
