from fastapi import APIRouter

from quoteversation.api.v1.auth import router as auth_router
from quoteversation.api.v1.posts import router as posts_router

api_router = APIRouter()
api_router.include_router(auth_router)
api_router.include_router(posts_router)
