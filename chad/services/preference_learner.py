"""
Learning durable user preferences from conversation
"""
from typing import Dict, List
import logging

from chad.config import (
    PREFERENCE_CONTEXT_TURNS,
    PREFERENCE_MAX_TOKENS,
    PREFERENCE_PROMPT_THRESHOLD,
    PREFERENCE_SAVE_THRESHOLD,
    PREFERENCE_TEMPERATURE
)
from chad.database.models import UserPreference
from chad.services.prompt_composer import render_preferences
from chad.utils.extractors import parse_json_object

logger = logging.getLogger(__name__)


def build_analysis_prompt(user_message: str, history: List[Dict[str, str]]) -> str:
    """Extraction instruction for one user utterance"""
    context = "\n".join(f"{msg['role']}: {msg['content']}" for msg in history[-PREFERENCE_CONTEXT_TURNS:])

    return f"""Analyze this user message and detect any preferences, instructions, or personal details that should be remembered for future conversations.

User message: "{user_message}"

Recent conversation context:
{context}

Detect and extract:
1. **Explicit instructions** - User directly telling you what to do/remember
   Examples: "I want you to be more direct", "Remember I workout 5x/week", "Don't use emojis"

2. **Implicit preferences** - Preferences shown through behavior or context
   Examples: User always mentions grams -> prefer metric, User mentions time constraints -> busy lifestyle

3. **Lifestyle details** - Personal info about routine, activity, goals
   Examples: "I play basketball", "I work night shifts", "I'm vegetarian"

4. **Communication style** - How they want to be talked to
   Examples: "Keep it short", "Be more casual", "Don't sugarcoat"

Each preference should have:
- type: "explicit" | "implicit" | "lifestyle" | "communication"
- key: Short identifier (e.g., "workout_frequency", "preferred_units", "communication_style")
- value: The actual preference (e.g., "5x per week with weights and basketball", "grams", "direct and honest")
- confidence: 0.0-1.0 (how confident you are this is a real preference)
- source: Brief explanation of where this came from

Return ONLY valid JSON in this exact format:
{{
  "preferences": [
    {{
      "type": "explicit",
      "key": "workout_frequency",
      "value": "Works out 5x per week with weights and basketball",
      "confidence": 1.0,
      "source": "User explicitly stated workout routine"
    }}
  ]
}}

If no preferences detected, return: {{"preferences": []}}"""


def parse_preferences(text: str) -> List[UserPreference]:
    """Valid preferences from an extraction reply. Bad shapes give []."""
    parsed = parse_json_object(text)
    if parsed is None:
        return []

    raw = parsed.get("preferences")
    if not isinstance(raw, list):
        logger.warning("Preference reply has no 'preferences' array")
        return []

    preferences = []
    for item in raw:
        pref = UserPreference.from_dict(item) if isinstance(item, dict) else None
        if pref is None:
            logger.debug(f"Skipping malformed preference: {item!r}")
            continue
        preferences.append(pref)
    return preferences


class PreferenceLearner:
    """Detects and stores preferences. Never raises into the chat turn."""

    def __init__(self, db, openai_service):
        self.db = db
        self.openai = openai_service

    async def detect_preferences(
        self,
        user_id: int,
        user_message: str,
        history: List[Dict[str, str]]
    ) -> List[UserPreference]:
        """
        Ask the completion service for preferences in one utterance and
        upsert the confident ones.

        Returns:
            The preferences that were saved
        """
        try:
            text = await self.openai.complete(
                build_analysis_prompt(user_message, history),
                [{"role": "user", "content": user_message}],
                temperature=PREFERENCE_TEMPERATURE,
                max_tokens=PREFERENCE_MAX_TOKENS,
                json_mode=True
            )

            saved = []
            for pref in parse_preferences(text):
                if pref.confidence < PREFERENCE_SAVE_THRESHOLD:
                    continue
                await self.db.save_preference(user_id, pref)
                saved.append(pref)

            if saved:
                logger.info(f"Learned {len(saved)} preference(s) for user {user_id}: "
                            f"{', '.join(p.key for p in saved)}")
            return saved
        except Exception as e:
            logger.error(f"Preference detection failed for user {user_id}: {e}")
            return []

    async def load_preferences_block(self, user_id: int) -> str:
        """Prompt block with the preferences Chad is confident about"""
        try:
            rows = await self.db.get_preferences(user_id, PREFERENCE_PROMPT_THRESHOLD)
        except Exception as e:
            logger.error(f"Failed to load preferences for user {user_id}: {e}")
            return ""
        return render_preferences(rows)
