"""
API v1 routes.
"""

from fastapi import APIRouter

from masterygate.api.v1 import attempts, progression

router = APIRouter()

router.include_router(attempts.router, prefix="/learners", tags=["Attempts"])
router.include_router(progression.router, prefix="/learners", tags=["Progression"])
