from __future__ import annotations

from pydantic import BaseModel


class ModuleProgressResponse(BaseModel):
    module_id: str
    completedCount: int
    totalCount: int
    progressPercentage: float
