from elearning.routers import admin, auth, content, enrollments, health, modules, progress, quizzes

__all__ = [
    "admin",
    "auth",
    "content",
    "enrollments",
    "health",
    "modules",
    "progress",
    "quizzes",
]
