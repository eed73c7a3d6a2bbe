"""
Validators for user-supplied data
"""
from typing import Dict, Iterable, Optional, Tuple
import re

from chad.config import WEIGHT_UNITS
from chad.database.models import GoalType, MealContext
from chad.exceptions import ValidationError

FEET_INCHES_RE = re.compile(r"^\s*(\d)\s*(?:'|ft|feet)\s*(\d{1,2})?\s*(?:\"|in|inches)?\s*$", re.IGNORECASE)


def _parse_number(value: str) -> float:
    return float(value.strip().replace(',', '.'))


def require_fields(data: Dict, fields: Iterable[str]) -> None:
    """Fail fast when any required field is missing or empty"""
    missing = [field for field in fields if data.get(field) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


class DataValidator:
    """Validation of user input"""

    @staticmethod
    def validate_name(name_str: str) -> Tuple[bool, Optional[str], str]:
        name = (name_str or "").strip()
        if 1 <= len(name) <= 50:
            return True, name, ""
        return False, None, "Name should be 1 to 50 characters"

    @staticmethod
    def validate_height(height_str: str) -> Tuple[bool, Optional[int], str]:
        """Height as 5'10" or as total inches"""
        match = FEET_INCHES_RE.match(height_str or "")
        try:
            if match:
                inches = int(match.group(1)) * 12 + int(match.group(2) or 0)
            else:
                inches = int(round(_parse_number(height_str)))
        except (ValueError, AttributeError):
            return False, None, "Send your height like 5'10\" or as inches, e.g. 70"

        if 48 <= inches <= 96:
            return True, inches, ""
        return False, None, "Height should be between 4'0\" and 8'0\""

    @staticmethod
    def validate_weight(weight_str: str) -> Tuple[bool, Optional[float], str]:
        """Weight in lbs"""
        try:
            weight = _parse_number(weight_str)
        except (ValueError, AttributeError):
            return False, None, "Please send a number"

        if 60 <= weight <= 700:
            return True, weight, ""
        return False, None, "Weight should be between 60 and 700 lbs"

    @staticmethod
    def validate_body_fat(body_fat_str: str) -> Tuple[bool, Optional[float], str]:
        try:
            body_fat = _parse_number(body_fat_str.rstrip('%'))
        except (ValueError, AttributeError):
            return False, None, "Please send a number, e.g. 20"

        if 2 <= body_fat <= 70:
            return True, body_fat, ""
        return False, None, "Body fat should be between 2 and 70%"

    @staticmethod
    def validate_goal(goal_str: str) -> Tuple[bool, Optional[GoalType], str]:
        try:
            return True, GoalType((goal_str or "").strip().lower()), ""
        except ValueError:
            return False, None, "Goal must be cut, bulk or maintain"

    @staticmethod
    def validate_amount(amount_str: str) -> Tuple[bool, Optional[float], str]:
        """Food amount for the manual logging form"""
        try:
            amount = _parse_number(amount_str)
        except (ValueError, AttributeError):
            return False, None, "Please send a number"

        if 0 < amount <= 5000:
            return True, amount, ""
        return False, None, "Amount should be between 0 and 5000"

    @staticmethod
    def validate_unit(unit_str: str) -> Tuple[bool, Optional[str], str]:
        unit = (unit_str or "").strip().lower()
        if unit in WEIGHT_UNITS:
            return True, unit, ""
        return False, None, f"Unit must be one of: {', '.join(WEIGHT_UNITS)}"

    @staticmethod
    def validate_context(context_str: Optional[str]) -> Tuple[bool, Optional[str], str]:
        """Meal context tag. 'none' and empty both mean no tag."""
        try:
            context = MealContext((context_str or "none").strip().lower())
        except ValueError:
            return False, None, f"Context must be one of: {', '.join(c.value for c in MealContext)}"

        if context is MealContext.NONE:
            return True, None, ""
        return True, context.value, ""

    @staticmethod
    def validate_ounces(ounces_str: str) -> Tuple[bool, Optional[float], str]:
        try:
            ounces = _parse_number(ounces_str.lower().replace('oz', ''))
        except (ValueError, AttributeError):
            return False, None, "Please send a number of ounces"

        if 0 < ounces <= 200:
            return True, ounces, ""
        return False, None, "Water should be between 0 and 200 oz"

    @staticmethod
    def validate_exercise(exercise_str: str) -> Tuple[bool, Optional[Dict], str]:
        """
        Parse "name, minutes, calories[, type]".

        Returns:
            (ok, {exercise_name, duration_minutes, calories_burned, exercise_type}, error)
        """
        parts = [part.strip() for part in (exercise_str or "").split(',')]
        if len(parts) < 3 or not parts[0]:
            return False, None, "Send it like: running, 30, 300"

        try:
            minutes = int(_parse_number(parts[1]))
            calories = int(_parse_number(parts[2]))
        except ValueError:
            return False, None, "Minutes and calories should be numbers"

        if not (0 < minutes <= 600) or not (0 <= calories <= 5000):
            return False, None, "Minutes should be 1-600 and calories 0-5000"

        return True, {
            "exercise_name": parts[0],
            "duration_minutes": minutes,
            "calories_burned": calories,
            "exercise_type": parts[3].lower() if len(parts) > 3 and parts[3] else "other"
        }, ""

    @staticmethod
    def validate_meal_edit(edit_str: str) -> Tuple[bool, Optional[Dict], str]:
        """
        Parse "calories, protein, carbs, fats" with an optional name first.

        Returns:
            (ok, update_meal_log fields, error)
        """
        parts = [part.strip() for part in (edit_str or "").split(',')]
        if len(parts) == 5:
            name, numbers = parts[0], parts[1:]
            if not name:
                return False, None, "The meal name can't be empty"
        elif len(parts) == 4:
            name, numbers = None, parts
        else:
            return False, None, "Send it like: eggs and toast, 450, 30, 40, 10 (the name is optional)"

        try:
            calories, protein, carbs, fats = (_parse_number(part) for part in numbers)
        except ValueError:
            return False, None, "Calories and macros should be numbers"

        if not (0 <= calories <= 10000) or min(protein, carbs, fats) < 0 or max(protein, carbs, fats) > 1000:
            return False, None, "Calories should be 0-10000 and each macro 0-1000g"

        fields = {
            "calories": int(round(calories)),
            "protein_g": round(protein, 1),
            "carbs_g": round(carbs, 1),
            "fats_g": round(fats, 1)
        }
        if name:
            fields["meal_name"] = name[:100]
        return True, fields, ""
