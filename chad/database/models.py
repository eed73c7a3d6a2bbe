"""
Data models for the database layer
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict


class GoalType(str, Enum):
    """Body composition goal"""
    CUT = "cut"
    BULK = "bulk"
    MAINTAIN = "maintain"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class MealContext(str, Enum):
    """Optional timing tag on a meal"""
    PRE_WORKOUT = "pre-workout"
    POST_WORKOUT = "post-workout"
    BEFORE_BED = "before-bed"
    NONE = "none"


class PreferenceType(str, Enum):
    EXPLICIT = "explicit"
    IMPLICIT = "implicit"
    LIFESTYLE = "lifestyle"
    COMMUNICATION = "communication"


@dataclass
class UserProfile:
    """Body stats and goal collected at onboarding"""
    name: str
    height_inches: float
    weight_lbs: float
    goal_type: GoalType
    current_body_fat: Optional[float] = None
    target_weight: Optional[float] = None
    target_body_fat: Optional[float] = None
    onboarding_complete: bool = False
    id: Optional[int] = None
    user_id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Dict) -> "UserProfile":
        """Build a profile from a user_profiles row"""
        return cls(
            id=row.get("id"),
            user_id=row.get("user_id"),
            name=row["name"],
            height_inches=row["height_inches"],
            weight_lbs=row["weight_lbs"],
            goal_type=GoalType(row["goal_type"]),
            current_body_fat=row.get("current_body_fat"),
            target_weight=row.get("target_weight"),
            target_body_fat=row.get("target_body_fat"),
            onboarding_complete=bool(row.get("onboarding_complete", False))
        )


@dataclass(frozen=True)
class MacroTargets:
    """Daily targets derived from a profile. Never authoritative in storage."""
    calories: int
    protein_g: int
    carbs_g: int
    fats_g: int


@dataclass(frozen=True)
class MealEstimate:
    """Macro numbers pulled out of an assistant reply or an estimate call"""
    calories: float
    protein_g: float
    carbs_g: float
    fats_g: float


@dataclass
class UserPreference:
    """Something Chad learned about the user"""
    type: PreferenceType
    key: str
    value: str
    confidence: float
    source: str

    @classmethod
    def from_dict(cls, data: Dict) -> Optional["UserPreference"]:
        """
        Validate a loosely shaped dict from the completion service.

        Returns None when any field is missing or has the wrong type.
        """
        try:
            pref_type = PreferenceType(data["type"])
            confidence = data["confidence"]
            if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
                return None
            key = str(data["key"]).strip()
            value = str(data["value"]).strip()
        except (KeyError, ValueError, TypeError):
            return None

        if not key or not value:
            return None

        return cls(
            type=pref_type,
            key=key,
            value=value,
            confidence=min(max(float(confidence), 0.0), 1.0),
            source=str(data.get("source") or "")
        )
