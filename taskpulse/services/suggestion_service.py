"""
Suggestion Service

Generates a motivational suggestion for a task, enforcing a per-user quota
kept in the user_stats table.

Flow:
1. Validate owner id and task name
2. Reserve one slot of the user's quota in a single conditional UPDATE;
   QuotaExceededError when no slot is left
3. Build the prompt and call the text generator once; a failure gives
   the slot back
4. Store the suggestion for analytics
5. Report the remaining count
"""
import asyncio
import logging
from typing import Callable, Dict, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from taskpulse.config import SUGGESTION_LIMIT
from taskpulse.db.config import SessionFactory
from taskpulse.errors import GenerationError, QuotaExceededError, ValidationError
from taskpulse.models.suggestion import Suggestion
from taskpulse.models.user_stats import UserStats
from taskpulse.schemas.suggestion import SuggestionRequest, SuggestionResponse
from taskpulse.services.prompt_builder import SYSTEM_PROMPT, build_prompt
from taskpulse.services.text_generation import TextGenerator
from taskpulse.timestamps import utcnow

logger = logging.getLogger(__name__)


class SuggestionService:
    """Quota-checked suggestion generation."""

    def __init__(
        self,
        session_factory: SessionFactory,
        generator: TextGenerator,
        limit: int = SUGGESTION_LIMIT,
        prompt_builder: Callable[[SuggestionRequest], str] = build_prompt,
    ):
        self.session_factory = session_factory
        self.generator = generator
        self.limit = limit
        self.prompt_builder = prompt_builder
        self._locks: Dict[str, asyncio.Lock] = {}

    async def suggest(self, request: SuggestionRequest) -> SuggestionResponse:
        """
        Generate a suggestion for the task described by ``request``.

        Raises:
            ValidationError: owner id or task name missing
            QuotaExceededError: the user already used every free suggestion
            GenerationError: the provider failed or returned nothing
        """
        if not request.user_id or not request.task_name:
            raise ValidationError("User ID and task name are required")

        user_id = request.user_id
        async with self._lock_for(user_id):
            new_count = await asyncio.to_thread(self._reserve, user_id)
        if new_count is None:
            count = await asyncio.to_thread(self.get_count, user_id)
            logger.info(f"Suggestion limit reached for user {user_id} ({count}/{self.limit})")
            raise QuotaExceededError(count=count, limit=self.limit)

        try:
            prompt = self.prompt_builder(request)
            content = await self.generator.generate(prompt, SYSTEM_PROMPT)
            if not content:
                raise GenerationError("Failed to generate suggestion")
        except BaseException:
            async with self._lock_for(user_id):
                await asyncio.to_thread(self._release, user_id)
            raise

        await asyncio.to_thread(self._record_suggestion, request, content)

        logger.info(f"Suggestion generated for user {user_id} ({new_count}/{self.limit})")
        return SuggestionResponse(
            suggestion=content,
            is_from_cache=False,
            remaining_count=max(self.limit - new_count, 0),
        )

    def get_count(self, user_id: str) -> int:
        """Suggestions used so far; 0 for a user with no stats yet."""
        with self.session_factory() as session:
            stats: Optional[UserStats] = session.get(UserStats, user_id)
            return stats.suggestion_count if stats else 0

    def _record_suggestion(self, request: SuggestionRequest, content: str) -> None:
        # Analytics only: a failed write is logged, the user still gets the suggestion
        task_name = request.task_name or ""
        try:
            with self.session_factory() as session:
                session.add(Suggestion(
                    task_name=task_name,
                    task_name_lower=task_name.lower().strip(),
                    task_type=request.task_type or "task",
                    content=content,
                    created_by=request.user_id,
                    created_at=utcnow(),
                    usage_count=1,
                    is_from_cache=False,
                ))
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to store suggestion analytics for user {request.user_id}: {e}")

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        # Serializes this process's reservations; the UPDATE guard covers other processes
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    def _reserve(self, user_id: str) -> Optional[int]:
        """Take one quota slot; the new count, or None when the limit is reached."""
        now = utcnow()
        with self.session_factory() as session:
            if session.get(UserStats, user_id) is None:
                session.add(UserStats(user_id=user_id, suggestion_count=0, created_at=now))
                try:
                    session.commit()
                except IntegrityError:
                    # Created concurrently by another worker
                    session.rollback()

            statement = (
                update(UserStats)
                .where(UserStats.user_id == user_id)
                .where(UserStats.suggestion_count < self.limit)
                .values(suggestion_count=UserStats.suggestion_count + 1, last_suggestion_at=now)
            )
            result = session.exec(statement)
            session.commit()
            if result.rowcount == 0:
                return None

            stats = session.get(UserStats, user_id, populate_existing=True)
            return stats.suggestion_count

    def _release(self, user_id: str) -> None:
        statement = (
            update(UserStats)
            .where(UserStats.user_id == user_id)
            .where(UserStats.suggestion_count > 0)
            .values(suggestion_count=UserStats.suggestion_count - 1)
        )
        with self.session_factory() as session:
            session.exec(statement)
            session.commit()
        logger.debug(f"Suggestion slot released for user {user_id}")
