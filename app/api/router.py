from fastapi import APIRouter
from app.api.endpoints import auth, posts, users

api_router = APIRouter()

# Combine all sub-routers into one
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(posts.router)
