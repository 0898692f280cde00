from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ModuleCreate(BaseModel):
    module_name: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    instructor_id: str | None = None
    is_published: bool = False
    category: str | None = Field(default=None, max_length=100)
    difficulty: str | None = Field(default=None, max_length=50)
    duration_hours: int | None = Field(default=None, ge=0)
    price: float = Field(default=0.0, ge=0)


class ModuleUpdate(BaseModel):
    module_name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, min_length=1)
    instructor_id: str | None = None
    is_published: bool | None = None
    category: str | None = Field(default=None, max_length=100)
    difficulty: str | None = Field(default=None, max_length=50)
    duration_hours: int | None = Field(default=None, ge=0)
    price: float | None = Field(default=None, ge=0)


class ModulePublic(BaseModel):
    id: str
    module_name: str
    description: str | None
    instructor_id: str
    instructor_firstname: str | None = None
    instructor_lastname: str | None = None
    is_published: bool
    category: str | None
    difficulty: str | None
    duration_hours: int | None
    price: float
    enrollment_count: int = 0
    created_at: datetime


class ModuleLearnerPublic(BaseModel):
    user_id: str
    firstname: str
    lastname: str
    email: str
    enrollment_id: str
    enrollment_date: datetime
    is_completed: bool
    completed_date: datetime | None = None
