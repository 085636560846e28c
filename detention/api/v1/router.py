"""
API v1 router: aggregates the detention endpoints.
"""

from fastapi import APIRouter

from detention.api.v1 import attendance, reassignment, slots, students, violations

router = APIRouter(
    responses={
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        404: {"description": "Not Found"},
        409: {"description": "Conflict"},
        422: {"description": "Validation Error"},
        503: {"description": "Dependency Unavailable"},
    }
)

router.include_router(slots.router)
router.include_router(violations.router)
router.include_router(attendance.router)
router.include_router(reassignment.router)
router.include_router(students.router)
