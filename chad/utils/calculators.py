"""
Macro target calculator
"""
import math

from chad.config import (
    ACTIVITY_MULTIPLIER,
    DEFAULT_AGE,
    FAT_CALORIE_SHARE,
    GOAL_ADJUSTMENTS
)
from chad.database.models import GoalType, MacroTargets, UserProfile

LBS_TO_KG = 0.453592
INCHES_TO_CM = 2.54


def js_round(value: float) -> int:
    """Round half up, so 2.5 -> 3 instead of banker's rounding."""
    return math.floor(value + 0.5)


class NutritionCalculator:
    """Calculator for daily calories and macros.

    Pure functions only: no logging, no storage, identical input always
    gives identical output.
    """

    @staticmethod
    def calculate_bmr(weight_lbs: float, height_inches: float) -> float:
        """
        Basal metabolic rate by Mifflin-St Jeor.

        The product does not collect age or sex, so the female formula
        with age 30 is always used.

        Args:
            weight_lbs: body weight in pounds
            height_inches: height in inches

        Returns:
            BMR in kcal/day
        """
        weight_kg = weight_lbs * LBS_TO_KG
        height_cm = height_inches * INCHES_TO_CM
        return (10 * weight_kg) + (6.25 * height_cm) - (5 * DEFAULT_AGE) - 161

    @staticmethod
    def calculate_tdee(bmr: float) -> float:
        """Total daily energy expenditure at moderate activity"""
        return bmr * ACTIVITY_MULTIPLIER

    @staticmethod
    def calculate_targets(weight_lbs: float, height_inches: float, goal: GoalType) -> MacroTargets:
        """
        Full calorie and macro split for a goal.

        Args:
            weight_lbs: body weight in pounds
            height_inches: height in inches
            goal: cut, bulk or maintain

        Returns:
            MacroTargets with whole-number values
        """
        goal = GoalType(goal)
        calorie_multiplier, protein_per_lb = GOAL_ADJUSTMENTS[goal.value]

        bmr = NutritionCalculator.calculate_bmr(weight_lbs, height_inches)
        tdee = NutritionCalculator.calculate_tdee(bmr)

        calories = js_round(tdee * calorie_multiplier)
        protein = js_round(weight_lbs * protein_per_lb)

        # 9 kcal per gram of fat, 4 per gram of protein and carbs
        fat_calories = calories * FAT_CALORIE_SHARE
        fats = js_round(fat_calories / 9)
        carbs = js_round((calories - protein * 4 - fat_calories) / 4)

        return MacroTargets(calories=calories, protein_g=protein, carbs_g=carbs, fats_g=fats)

    @staticmethod
    def calculate_macros(profile: UserProfile) -> MacroTargets:
        """Targets for a stored profile"""
        return NutritionCalculator.calculate_targets(
            profile.weight_lbs,
            profile.height_inches,
            profile.goal_type
        )

    @staticmethod
    def remaining(targets: MacroTargets, totals: dict) -> dict:
        """Budget left for the day given a daily_stats row (may go negative)"""
        return {
            "calories": targets.calories - js_round(totals.get("total_calories", 0) or 0),
            "protein": targets.protein_g - js_round(totals.get("total_protein_g", 0) or 0),
            "carbs": targets.carbs_g - js_round(totals.get("total_carbs_g", 0) or 0),
            "fats": targets.fats_g - js_round(totals.get("total_fats_g", 0) or 0)
        }
