from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class EnrollRequest(BaseModel):
    module_id: str


class EnrollmentPublic(BaseModel):
    id: str
    module_id: str
    enrollment_date: datetime
    is_completed: bool
    completed_date: datetime | None = None


class MyEnrollmentPublic(EnrollmentPublic):
    module_name: str
    description: str | None = None
    price: float = 0.0
    instructor_firstname: str | None = None
    instructor_lastname: str | None = None
