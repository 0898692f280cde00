from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class UserPublic(BaseModel):
    id: str
    firstname: str
    lastname: str
    email: str
    role: str
    is_active: bool
    created_at: datetime


class UserStatusRequest(BaseModel):
    is_active: bool


class ModuleReportRow(BaseModel):
    module_id: str
    module_name: str
    total_enrollments: int
    completed_enrollments: int
    total_learners: int
    completion_rate_percentage: float
