"""Tracked GitHub repository model"""

from sqlalchemy import Column, BigInteger, ForeignKey, Index, Integer, String, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from app.utils.helpers import utcnow
from app.config.database import Base


class Repository(Base):
    """Repository polled for language metrics, identified by (owner, name)."""

    __tablename__ = "repositories"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    team_id = Column(BigInteger, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)

    owner = Column(String(200), nullable=False)
    name = Column(String(200), nullable=False)
    url = Column(String(1000), nullable=False)

    created_at = Column(DateTime, nullable=False, default=utcnow)

    team = relationship("Team", back_populates="repositories")
    metrics = relationship(
        "Metric",
        back_populates="repository",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("owner", "name", name="uk_repositories_owner_name"),
        Index("idx_repositories_team", "team_id"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def __repr__(self):
        return f"<Repository {self.full_name}>"
