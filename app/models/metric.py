"""Per-language size sample for one repository at one poll timestamp."""

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from app.config.database import Base


class Metric(Base):
    """Immutable metric row; one per language per poll snapshot."""

    __tablename__ = "metrics"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    repository_id = Column(BigInteger, ForeignKey("repositories.id", ondelete="CASCADE"), nullable=False)

    language = Column(String(200), nullable=False)
    bytes = Column(BigInteger, nullable=False)
    lines = Column(BigInteger, nullable=False)

    # Naive UTC, rounded down to the minute at write time
    timestamp = Column(DateTime, nullable=False)

    repository = relationship("Repository", back_populates="metrics")

    __table_args__ = (
        Index("idx_metrics_repo_timestamp", "repository_id", "timestamp"),
    )

    def __repr__(self):
        return f"<Metric {self.repository_id}:{self.language}@{self.timestamp}>"
