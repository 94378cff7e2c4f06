from app.models.application import Application
from app.models.decision import Decision

__all__ = [
    "Application",
    "Decision",
]
