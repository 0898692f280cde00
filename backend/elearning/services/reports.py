from __future__ import annotations

from typing import Any

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from elearning.models.enrollment import Enrollment
from elearning.models.module import Module
from elearning.services.progress import progress_percentage


def enrollment_report(db: Session) -> list[dict[str, Any]]:
    """Per-module enrollment totals for the admin dashboard."""
    completed = func.sum(case((Enrollment.is_completed.is_(True), 1), else_=0))
    rows = db.execute(
        select(
            Module.id,
            Module.module_name,
            func.count(Enrollment.id),
            func.coalesce(completed, 0),
            func.count(func.distinct(Enrollment.user_id)),
        )
        .outerjoin(Enrollment, Enrollment.module_id == Module.id)
        .group_by(Module.id, Module.module_name)
        .order_by(Module.module_name)
    ).all()

    return [
        {
            "module_id": str(mid),
            "module_name": name,
            "total_enrollments": int(total or 0),
            "completed_enrollments": int(done or 0),
            "total_learners": int(learners or 0),
            "completion_rate_percentage": progress_percentage(int(done or 0), int(total or 0)),
        }
        for mid, name, total, done, learners in rows
    ]
