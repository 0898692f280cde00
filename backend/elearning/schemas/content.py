from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class ContentPublic(BaseModel):
    id: str
    module_id: str
    title: str
    content_type: str
    content_text: str | None = None
    file_path: str | None = None
    quiz_data: list[dict[str, Any]] | None = None
    created_at: datetime
    user_completed_content: bool = False


class ContentCreatedResponse(BaseModel):
    ok: bool = True
    content_id: str
    message: str = "Content added successfully"
