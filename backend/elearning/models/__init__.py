from elearning.models.user import User, UserRole
from elearning.models.module import Module
from elearning.models.content import Content, ContentType
from elearning.models.enrollment import Enrollment
from elearning.models.progress import UserContentProgress
from elearning.models.attempt import QuizAttempt
from elearning.models.security_audit import SecurityAuditEvent

__all__ = [
    "User",
    "UserRole",
    "Module",
    "Content",
    "ContentType",
    "Enrollment",
    "UserContentProgress",
    "QuizAttempt",
    "SecurityAuditEvent",
]
