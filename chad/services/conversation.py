"""
One chat turn with Chad, end to end
"""
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Set
import asyncio
import logging

from chad.config import CHAT_HISTORY_LIMIT, CHAT_MAX_TOKENS, CHAT_TEMPERATURE
from chad.database.models import MacroTargets, MessageRole, UserProfile
from chad.exceptions import ChatTurnError, CompletionServiceError, ValidationError
from chad.services.prompt_composer import (
    DEFAULT_STYLE,
    ActivitySnapshot,
    PromptStyle,
    build_activity_digest,
    build_system_prompt
)
from chad.utils.calculators import NutritionCalculator
from chad.utils.extractors import meal_name_from, mentions_onboarding_complete, parse_meal_estimate
from chad.utils.segmenter import split_into_messages

logger = logging.getLogger(__name__)


class TurnState(str, Enum):
    """Stages of a chat turn"""
    COLLECTING_CONTEXT = "collecting-context"
    COMPOSING_PROMPT = "composing-prompt"
    AWAITING_COMPLETION = "awaiting-completion"
    SEGMENTING = "segmenting"
    PERSISTING = "persisting"
    EXTRACTING = "extracting"
    RESPONDING = "responding"
    FAILED = "failed"


@dataclass
class TurnResult:
    """What a successful turn produced"""
    messages: List[Dict]
    raw_text: str
    targets: MacroTargets
    meal_log: Optional[Dict] = None
    onboarding_completed: bool = False
    states: List[TurnState] = field(default_factory=list)

    @property
    def texts(self) -> List[str]:
        return [msg["content"] for msg in self.messages]


class ConversationOrchestrator:
    """Runs chat turns: context, prompt, completion, bubbles, meal extraction"""

    def __init__(self, db, openai_service, preference_learner, style: PromptStyle = DEFAULT_STYLE):
        self.db = db
        self.openai = openai_service
        self.preference_learner = preference_learner
        self.style = style
        # strong refs so detached tasks are not garbage collected mid-flight
        self._background_tasks: Set[asyncio.Task] = set()

    async def load_snapshot(self, user_id: int, today: date) -> ActivitySnapshot:
        """Today's logged activity plus the last week of weigh-ins"""
        return ActivitySnapshot(
            meals=await self.db.get_meal_logs_by_date(user_id, today),
            daily_stats=await self.db.get_daily_stats(user_id, today),
            water=await self.db.get_water_logs_by_date(user_id, today),
            exercise=await self.db.get_exercise_logs_by_date(user_id, today),
            weights=await self.db.get_recent_weight_logs(user_id)
        )

    def _dispatch_preference_detection(self, user_id: int, text: str, history: List[Dict[str, str]]) -> asyncio.Task:
        task = asyncio.create_task(self.preference_learner.detect_preferences(user_id, text, history))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def wait_for_background_tasks(self) -> None:
        """Let pending preference detection finish (shutdown and tests)"""
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)

    async def handle_message(self, user_id: int, text: str) -> TurnResult:
        """
        Run one turn for a user message.

        The user's message is saved before the completion call, so it stays
        logged even when the turn fails. Nothing is written for the
        assistant on failure, and nothing is retried.

        Raises:
            ValidationError: empty message or no profile yet
            ChatTurnError: the completion service failed
        """
        states = []

        def enter(state: TurnState):
            states.append(state)
            logger.debug(f"Turn for user {user_id}: {state.value}")

        text = (text or "").strip()
        if not user_id or not text:
            raise ValidationError("Missing required fields")

        enter(TurnState.COLLECTING_CONTEXT)
        profile_row = await self.db.get_user_profile(user_id)
        if not profile_row:
            raise ValidationError("Finish your profile before chatting")

        profile = UserProfile.from_row(profile_row)
        targets = NutritionCalculator.calculate_macros(profile)
        today = date.today()
        snapshot = await self.load_snapshot(user_id, today)
        history = [
            {"role": msg["role"], "content": msg["content"]}
            for msg in await self.db.get_messages(user_id, limit=CHAT_HISTORY_LIMIT)
        ]

        await self.db.save_message(user_id, MessageRole.USER, text)
        self._dispatch_preference_detection(user_id, text, history)

        enter(TurnState.COMPOSING_PROMPT)
        system_prompt = build_system_prompt(
            profile,
            targets,
            preferences_block=await self.preference_learner.load_preferences_block(user_id),
            activity_digest=build_activity_digest(snapshot, targets, profile),
            style=self.style
        )

        enter(TurnState.AWAITING_COMPLETION)
        try:
            raw_text = await self.openai.complete(
                system_prompt,
                history + [{"role": MessageRole.USER.value, "content": text}],
                temperature=CHAT_TEMPERATURE,
                max_tokens=CHAT_MAX_TOKENS
            )
        except CompletionServiceError as e:
            enter(TurnState.FAILED)
            logger.error(f"Chat turn failed for user {user_id}: {e}")
            raise ChatTurnError("Failed to generate response") from e

        enter(TurnState.SEGMENTING)
        parts = split_into_messages(raw_text)
        if not parts:
            enter(TurnState.FAILED)
            logger.error(f"Completion for user {user_id} had no displayable text")
            raise ChatTurnError("Failed to generate response")

        enter(TurnState.PERSISTING)
        saved = []
        for part in parts:
            saved.append(await self.db.save_message(user_id, MessageRole.ASSISTANT, part))

        enter(TurnState.EXTRACTING)
        meal_log = None
        estimate = parse_meal_estimate(raw_text)
        if estimate:
            meal_log = await self.db.create_meal_log(
                user_id,
                meal_name_from(text),
                calories=estimate.calories,
                protein_g=estimate.protein_g,
                carbs_g=estimate.carbs_g,
                fats_g=estimate.fats_g,
                message_id=saved[0].get("id")
            )

        onboarding_completed = False
        if not profile.onboarding_complete and mentions_onboarding_complete(raw_text):
            onboarding_completed = await self.db.mark_onboarding_complete(user_id)

        enter(TurnState.RESPONDING)
        logger.info(f"Turn for user {user_id}: {len(saved)} bubble(s), meal logged: {meal_log is not None}")
        return TurnResult(
            messages=saved,
            raw_text=raw_text,
            targets=targets,
            meal_log=meal_log,
            onboarding_completed=onboarding_completed,
            states=states
        )
