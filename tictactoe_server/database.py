"""SQLAlchemy engine, session factory, and table definitions."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid4().hex


class User(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=_new_id)
    username = Column(String, nullable=False, unique=True)
    email = Column(String, nullable=False, unique=True)
    games_played = Column(Integer, nullable=False, default=0)
    games_won = Column(Integer, nullable=False, default=0)
    time_played = Column(Float, nullable=False, default=0.0)  # minutes
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def stats_dict(self) -> dict:
        return {
            "gamesPlayed": self.games_played,
            "gamesWon": self.games_won,
            "timePlayed": self.time_played,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "stats": self.stats_dict(),
        }


class GameRecord(Base):
    __tablename__ = "game_stats"
    __table_args__ = (Index("ix_game_stats_user_timestamp", "user_id", "timestamp"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(32), ForeignKey("users.id"), nullable=False)
    result = Column(String, nullable=False)  # "won" | "lost" | "draw"
    duration = Column(Float, nullable=False)  # minutes
    board_size = Column(Integer, nullable=False)
    difficulty = Column(String, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "result": self.result,
            "duration": self.duration,
            "boardSize": self.board_size,
            "difficulty": self.difficulty,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


def make_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Routes run in a worker thread pool.
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)
