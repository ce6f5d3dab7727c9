"""Database models"""

from app.models.team import Team
from app.models.repository import Repository
from app.models.metric import Metric

__all__ = [
    "Team",
    "Repository",
    "Metric",
]
