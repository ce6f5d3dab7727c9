"""Team model for coding event participants"""

from sqlalchemy import Column, BigInteger, Integer, String, DateTime
from sqlalchemy.orm import relationship
from app.utils.helpers import utcnow
from app.config.database import Base


class Team(Base):
    """
    Team model

    A team owns zero or more tracked repositories; deleting a team
    removes its repositories and, through them, their metrics.
    """
    __tablename__ = "teams"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False, unique=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    repositories = relationship(
        "Repository",
        back_populates="team",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Repository.created_at.desc()",
    )

    def __repr__(self):
        return f"<Team {self.name}>"
