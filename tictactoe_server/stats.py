"""Game statistics: persistent per-user aggregates and the end-of-game reporter."""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from tictactoe_server.database import GameRecord, User
from tictactoe_server.exceptions import UserExistsError, UserNotFoundError
from tictactoe_server.game import Difficulty, GameStatus

logger = logging.getLogger(__name__)

RECENT_GAMES_LIMIT = 5


class StatsService:
    """Reads and writes users and their game records."""

    def __init__(self, session_factory: sessionmaker):
        self._sessions = session_factory

    def create_user(self, username: str, email: str) -> dict:
        username = username.strip()
        email = email.strip().lower()
        with self._sessions() as db:
            existing = db.scalar(
                select(User).where(or_(User.username == username, User.email == email))
            )
            if existing is not None:
                raise UserExistsError()
            user = User(username=username, email=email)
            db.add(user)
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise UserExistsError() from exc
            logger.info("Created user %s (%s)", user.id, username)
            return user.to_dict()

    def get_user(self, user_id: str) -> dict:
        with self._sessions() as db:
            user = db.get(User, user_id)
            if user is None:
                raise UserNotFoundError(user_id)
            return user.to_dict()

    def record_game(
        self,
        user_id: str,
        result: str,
        duration: float,
        board_size: int,
        difficulty: str,
    ) -> dict:
        """Store one finished game and bump the user's aggregates.

        Returns the updated aggregate stats.
        """
        with self._sessions() as db:
            if db.get(User, user_id) is None:
                raise UserNotFoundError(user_id)

            db.add(
                GameRecord(
                    user_id=user_id,
                    result=result,
                    duration=duration,
                    board_size=board_size,
                    difficulty=difficulty,
                )
            )
            values = {
                "games_played": User.games_played + 1,
                "time_played": User.time_played + duration,
            }
            if result == "won":
                values["games_won"] = User.games_won + 1
            db.execute(update(User).where(User.id == user_id).values(**values))
            db.commit()

            user = db.get(User, user_id)
            return user.stats_dict()

    def get_stats(self, user_id: str, limit: int = RECENT_GAMES_LIMIT) -> dict:
        """Aggregate stats plus the most recent games, newest first."""
        with self._sessions() as db:
            user = db.get(User, user_id)
            if user is None:
                raise UserNotFoundError(user_id)
            recent = db.scalars(
                select(GameRecord)
                .where(GameRecord.user_id == user_id)
                .order_by(GameRecord.timestamp.desc(), GameRecord.id.desc())
                .limit(limit)
            ).all()
            return {
                "stats": user.stats_dict(),
                "recentGames": [game.to_dict() for game in recent],
            }


class StatsReporter:
    """Reports finished matches for one user.

    Reporting is best effort: failures are logged and never raised, so a
    finished match keeps its status whatever happens to the stats store.
    """

    def __init__(self, service: StatsService, user_id: str):
        self.service = service
        self.user_id = user_id

    async def report_outcome(
        self,
        status: GameStatus,
        duration_minutes: float,
        size: int,
        difficulty: Difficulty,
    ) -> dict | None:
        if status.result is None:
            logger.warning("Refusing to report unfinished game for user %s", self.user_id)
            return None
        try:
            stats = await asyncio.to_thread(
                self.service.record_game,
                self.user_id,
                status.result,
                duration_minutes,
                size,
                difficulty.value,
            )
        except Exception:
            logger.exception("Failed to record game for user %s", self.user_id)
            return None
        logger.info(
            "Recorded %s game for user %s (%dx%d, %s, %.2f min)",
            status.result, self.user_id, size, size, difficulty.value, duration_minutes,
        )
        return stats
