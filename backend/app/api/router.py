"""Marketplace Admin API Router - aggregates all routes."""

from fastapi import APIRouter

from app.api import admin_session, console, health

api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(admin_session.router)
api_router.include_router(console.router)
