from fastapi import APIRouter

from blogfeed.api.routes import categories, engagement, health, notifications, posts

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(posts.router, prefix="/posts", tags=["posts"])
api_router.include_router(engagement.router, prefix="/posts", tags=["engagement"])
api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["admin"])
