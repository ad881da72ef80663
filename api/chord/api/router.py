"""API router composition for all route groups."""

from fastapi import APIRouter

from .routes import chat, integrations, matches, users

api_router = APIRouter()
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(integrations.router, prefix="/integrations", tags=["integrations"])
api_router.include_router(matches.router, prefix="/matches", tags=["matches"])
api_router.include_router(chat.router, prefix="/chat", tags=["chat"])
