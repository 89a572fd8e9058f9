"""API router aggregating all route modules."""

from fastapi import APIRouter

from school_api.api.routes import (
    classrooms,
    schools,
    students,
    users,
)

api_router = APIRouter()

api_router.include_router(users.router)
api_router.include_router(schools.router)
api_router.include_router(classrooms.router)
api_router.include_router(students.router)
