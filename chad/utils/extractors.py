"""
Pulling structured data out of completion text
"""
from typing import Dict, Iterable, Optional
import json
import logging
import re

from chad.config import ONBOARDING_COMPLETE_PHRASES
from chad.database.models import MealEstimate

logger = logging.getLogger(__name__)

MEAL_ESTIMATE_RE = re.compile(
    r"Estimated:\s*(\d+)\s*cal\s*\|\s*(\d+)g\s*protein\s*\|\s*(\d+)g\s*carbs\s*\|\s*(\d+)g\s*fat",
    re.IGNORECASE
)
CODE_FENCE_RE = re.compile(r"```(?:json)?\n?", re.IGNORECASE)

MEAL_NAME_MAX_LENGTH = 100


def parse_meal_estimate(text: Optional[str]) -> Optional[MealEstimate]:
    """
    Find "Estimated: X cal | Xg protein | Xg carbs | Xg fat" in a reply.

    No match is the normal outcome for replies that are not about food.
    """
    if not text:
        return None

    match = MEAL_ESTIMATE_RE.search(text)
    if not match:
        return None

    calories, protein, carbs, fats = (int(group) for group in match.groups())
    return MealEstimate(calories=calories, protein_g=protein, carbs_g=carbs, fats_g=fats)


def meal_name_from(user_message: str) -> str:
    """Meal name is just the start of what the user typed"""
    return (user_message or "")[:MEAL_NAME_MAX_LENGTH]


def mentions_onboarding_complete(text: Optional[str], phrases: Iterable[str] = ONBOARDING_COMPLETE_PHRASES) -> bool:
    """True when the reply says setup is done"""
    if not text:
        return False
    lowered = text.lower().replace("’", "'")
    return any(phrase in lowered for phrase in phrases)


def strip_code_fences(text: str) -> str:
    return CODE_FENCE_RE.sub("", text or "").strip()


def parse_json_object(text: Optional[str]) -> Optional[Dict]:
    """
    Parse a JSON object from untrusted completion text.

    Markdown fences are removed first. Anything that is not a JSON object
    gives None and a log line, never an exception.
    """
    cleaned = strip_code_fences(text or "")
    if not cleaned:
        return None

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning(f"Could not parse JSON from completion: {e}; text: {cleaned[:200]}")
        return None

    if not isinstance(parsed, dict):
        logger.warning(f"Expected a JSON object, got {type(parsed).__name__}")
        return None

    return parsed
