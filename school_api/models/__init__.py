# Database models

from school_api.models.school import School, SchoolType
from school_api.models.classroom import Classroom
from school_api.models.student import Gender, PreviousSchool, Student, StudentStatus
from school_api.models.user import User

__all__ = [
    "School",
    "SchoolType",
    "Classroom",
    "Student",
    "StudentStatus",
    "Gender",
    "PreviousSchool",
    "User",
]
