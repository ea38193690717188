"""
Relational storage for feedback items (SQLAlchemy, SQLite by default).

One table, ``feedback``. Rows are created with base attributes only and
receive every enrichment column in a single UPDATE when a run completes.
"""

import json
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Float, Index, Integer, String, Text, create_engine, delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from src.errors import DuplicateFeedbackError, FeedbackNotFoundError


class Base(DeclarativeBase):
    pass


class FeedbackRecord(Base):
    __tablename__ = "feedback"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    source: Mapped[str] = mapped_column(String, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    content_hash: Mapped[str] = mapped_column(String, nullable=False)
    author: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    customer_tier: Mapped[str] = mapped_column(String, default="free", server_default="free")
    created_at: Mapped[str] = mapped_column(String, nullable=False)  # ISO-8601

    # Enrichment, null until the workflow stores results
    sentiment: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    sentiment_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    urgency: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    themes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # JSON list
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    processed_at: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    priority_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    arr_estimate: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index("idx_source", "source"),
        Index("idx_urgency", "urgency"),
        Index("idx_sentiment", "sentiment"),
        Index("idx_created", "created_at"),
        Index("idx_content_hash", "content_hash", unique=True),
    )

    @property
    def theme_list(self) -> list[str]:
        if not self.themes:
            return []
        try:
            themes = json.loads(self.themes)
        except (TypeError, ValueError):
            return []
        return themes if isinstance(themes, list) else []

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source": self.source,
            "content": self.content,
            "content_hash": self.content_hash,
            "author": self.author,
            "customer_tier": self.customer_tier,
            "created_at": self.created_at,
            "sentiment": self.sentiment,
            "sentiment_score": self.sentiment_score,
            "urgency": self.urgency,
            "themes": self.theme_list if self.themes is not None else None,
            "summary": self.summary,
            "processed_at": self.processed_at,
            "priority_score": self.priority_score,
            "arr_estimate": self.arr_estimate,
        }


def create_db_engine(url: str):
    """Engine for the feedback database; creates the schema if missing."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, connect_args=connect_args)
    Base.metadata.create_all(engine)
    return engine


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class FeedbackRepository:
    """All reads and writes of the feedback table. Errors propagate to the caller."""

    def __init__(self, engine):
        self.engine = engine
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, url: str) -> "FeedbackRepository":
        return cls(create_db_engine(url))

    def create(self, record: FeedbackRecord) -> FeedbackRecord:
        try:
            with self._sessions.begin() as session:
                session.add(record)
        except IntegrityError as e:
            existing = self.find_by_hash(record.content_hash)
            if existing is None:
                raise
            raise DuplicateFeedbackError(record.content_hash, existing.id) from e
        return record

    def get(self, feedback_id: str) -> Optional[FeedbackRecord]:
        with self._sessions() as session:
            return session.get(FeedbackRecord, feedback_id)

    def find_by_hash(self, content_hash: str) -> Optional[FeedbackRecord]:
        with self._sessions() as session:
            return session.scalars(
                select(FeedbackRecord).where(FeedbackRecord.content_hash == content_hash)
            ).first()

    def save_enrichment(self, feedback_id: str, *, sentiment: str, sentiment_score: float,
                        urgency: str, themes: list[str], summary: str,
                        priority_score: float, processed_at: Optional[str] = None) -> str:
        """Write every enrichment column and processed_at in one statement."""
        processed_at = processed_at or datetime.now(timezone.utc).isoformat()
        with self._sessions.begin() as session:
            result = session.execute(
                update(FeedbackRecord)
                .where(FeedbackRecord.id == feedback_id)
                .values(
                    sentiment=sentiment,
                    sentiment_score=sentiment_score,
                    urgency=urgency,
                    themes=json.dumps(themes),
                    summary=summary,
                    priority_score=priority_score,
                    processed_at=processed_at,
                )
            )
            if result.rowcount == 0:
                raise FeedbackNotFoundError(feedback_id)
        return processed_at

    def list_feedback(self, source: Optional[str] = None, urgency: Optional[str] = None,
                      sentiment: Optional[str] = None, theme: Optional[str] = None,
                      limit: int = 100) -> list[FeedbackRecord]:
        """Filtered rows, highest priority first, then newest."""
        query = select(FeedbackRecord)
        if source:
            query = query.where(FeedbackRecord.source == source)
        if urgency:
            query = query.where(FeedbackRecord.urgency == urgency)
        if sentiment:
            query = query.where(FeedbackRecord.sentiment == sentiment)
        if theme:
            query = query.where(FeedbackRecord.themes.like(f'%"{_escape_like(theme)}"%', escape="\\"))
        query = query.order_by(
            FeedbackRecord.priority_score.desc(),
            FeedbackRecord.created_at.desc(),
        ).limit(limit)
        with self._sessions() as session:
            return list(session.scalars(query))

    def list_by_theme(self, theme: str) -> list[FeedbackRecord]:
        return self.list_feedback(theme=theme, limit=None)

    def all(self) -> list[FeedbackRecord]:
        with self._sessions() as session:
            return list(session.scalars(select(FeedbackRecord)))

    def clear(self) -> int:
        """Delete every row. No soft delete."""
        with self._sessions.begin() as session:
            return session.execute(delete(FeedbackRecord)).rowcount
