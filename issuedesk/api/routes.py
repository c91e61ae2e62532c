"""
API router — mounts the auth and issue endpoints under one prefix.
"""

from fastapi import APIRouter

from issuedesk.api.endpoints import auth, issues

api_router = APIRouter()

# Registration, login, current actor
api_router.include_router(auth.router)

# Issue CRUD + admin export
api_router.include_router(issues.router)
