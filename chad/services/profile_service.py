"""
Profile creation at the end of onboarding
"""
from typing import Dict, Tuple
import logging

from chad.database.models import GoalType, MacroTargets
from chad.exceptions import ValidationError
from chad.utils.calculators import NutritionCalculator
from chad.utils.validators import require_fields

logger = logging.getLogger(__name__)

REQUIRED_PROFILE_FIELDS = ("name", "height_inches", "weight_lbs", "goal_type")


async def create_profile(db, user_id: int, profile_data: Dict) -> Tuple[Dict, MacroTargets]:
    """
    Store a new profile with a snapshot of its macro targets.

    The daily_* columns are a cache taken now; chat turns always recompute
    targets from the profile. An initial weight log is written as well.

    Raises:
        ValidationError: missing fields or an unknown goal, before any write
    """
    require_fields(profile_data, REQUIRED_PROFILE_FIELDS)
    try:
        goal = GoalType(profile_data["goal_type"])
    except ValueError:
        raise ValidationError(f"Unknown goal type: {profile_data['goal_type']}")

    targets = NutritionCalculator.calculate_targets(
        profile_data["weight_lbs"],
        profile_data["height_inches"],
        goal
    )

    profile = await db.create_user_profile({
        "user_id": user_id,
        "name": profile_data["name"],
        "height_inches": profile_data["height_inches"],
        "weight_lbs": profile_data["weight_lbs"],
        "current_body_fat": profile_data.get("current_body_fat"),
        "goal_type": goal.value,
        "target_weight": profile_data.get("target_weight"),
        "target_body_fat": profile_data.get("target_body_fat"),
        "daily_calories": targets.calories,
        "daily_protein_g": targets.protein_g,
        "daily_carbs_g": targets.carbs_g,
        "daily_fats_g": targets.fats_g,
        "onboarding_complete": False
    })

    await db.create_weight_log(
        user_id,
        profile_data["weight_lbs"],
        body_fat=profile_data.get("current_body_fat")
    )

    logger.info(f"Profile created for user {user_id}: {goal.value}, {targets.calories} cal")
    return profile, targets
