"""
System prompt assembly for Chad
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from chad.config import GOALS, MESSAGE_DELIMITER, WATER_GOAL_OZ
from chad.database.models import MacroTargets, PreferenceType, UserProfile
from chad.database.queries import day_of
from chad.utils.calculators import NutritionCalculator

PREFERENCE_HEADINGS = [
    (PreferenceType.EXPLICIT, "User Instructions"),
    (PreferenceType.LIFESTYLE, "Lifestyle Details"),
    (PreferenceType.COMMUNICATION, "Communication Preferences"),
    (PreferenceType.IMPLICIT, "Observed Patterns")
]


@dataclass(frozen=True)
class PromptStyle:
    """Tone and cadence knobs for the assistant persona"""
    persona: str = "Chad"
    tagline: str = "a chill fitness buddy who texts like a real person"
    tone_rules: tuple = (
        "Casual, straightforward language",
        "Don't be overly enthusiastic or use forced slang",
        "Don't be preachy",
    )
    allow_emojis: bool = False
    min_messages: int = 3
    max_messages: int = 5
    words_per_message: str = "5-10"
    version: str = "v2"


DEFAULT_STYLE = PromptStyle()


@dataclass
class ActivitySnapshot:
    """Everything logged today, as rows from storage"""
    meals: List[Dict] = field(default_factory=list)
    daily_stats: Optional[Dict] = None
    water: List[Dict] = field(default_factory=list)
    exercise: List[Dict] = field(default_factory=list)
    weights: List[Dict] = field(default_factory=list)  # last 7 days, newest first

    def is_empty(self) -> bool:
        return not (self.meals or self.water or self.exercise or self.weights)


def _format_height(height_inches: float) -> str:
    inches = int(round(height_inches))
    return f"{inches // 12}'{inches % 12}\""


def _format_time(value) -> str:
    moment = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
    return moment.strftime("%I:%M %p").lstrip("0")


def _format_number(value) -> str:
    value = value or 0
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def render_preferences(preferences: List[Dict]) -> str:
    """
    Learned preferences grouped by type under labeled headings.

    Expects rows already filtered by confidence. Empty input gives "".
    """
    if not preferences:
        return ""

    text = "\n\n**LEARNED USER PREFERENCES:**\n"
    for pref_type, heading in PREFERENCE_HEADINGS:
        values = [p["preference_value"] for p in preferences if p.get("preference_type") == pref_type.value]
        if values:
            text += f"\n{heading}:\n"
            text += "".join(f"- {value}\n" for value in values)

    text += ("\n**IMPORTANT: Adapt your responses based on these learned preferences. "
             "The user taught you this through conversation.**\n")
    return text


def build_activity_digest(snapshot: ActivitySnapshot, targets: MacroTargets, profile: UserProfile) -> str:
    """Today's meals, water, exercise and weight trend, or "" when nothing is logged"""
    if snapshot.is_empty():
        return ""

    sections = []

    if snapshot.meals:
        meal_lines = []
        for meal in snapshot.meals:
            context = f" [{meal['context']}]" if meal.get("context") else ""
            meal_lines.append(
                f"- {_format_time(meal['logged_at'])}{context}: {meal['meal_name']} - "
                f"{_format_number(meal.get('calories'))}cal, {_format_number(meal.get('protein_g'))}g protein, "
                f"{_format_number(meal.get('carbs_g'))}g carbs, {_format_number(meal.get('fats_g'))}g fat"
            )

        stats = snapshot.daily_stats or {}
        if snapshot.daily_stats:
            totals = (f"Current totals: {round(stats.get('total_calories', 0))}cal, "
                      f"{round(stats.get('total_protein_g', 0))}g protein, "
                      f"{round(stats.get('total_carbs_g', 0))}g carbs, "
                      f"{round(stats.get('total_fats_g', 0))}g fat")
        else:
            totals = "No meals logged yet today"

        left = NutritionCalculator.remaining(targets, stats)
        remaining = (f"Remaining: {left['calories']}cal, {left['protein']}g protein, "
                     f"{left['carbs']}g carbs, {left['fats']}g fat")

        sections.append("**MEALS TODAY:**\n" + "\n".join(meal_lines) + f"\n\n{totals}\n{remaining}")

    if snapshot.water:
        total_water = sum(log.get("ounces", 0) or 0 for log in snapshot.water)
        percent = round(total_water / WATER_GOAL_OZ * 100)
        sections.append(f"**WATER INTAKE TODAY:**\nTotal: {_format_number(total_water)}oz / {WATER_GOAL_OZ}oz goal "
                        f"({percent}%)\nLogs: {len(snapshot.water)} entries")

    if snapshot.exercise:
        exercise_lines = "\n".join(
            f"- {ex['exercise_name']} ({ex.get('exercise_type') or 'other'}): "
            f"{ex.get('duration_minutes', 0)}min, {ex.get('calories_burned', 0)}cal burned"
            for ex in snapshot.exercise
        )
        total_minutes = sum(ex.get("duration_minutes", 0) or 0 for ex in snapshot.exercise)
        total_burned = sum(ex.get("calories_burned", 0) or 0 for ex in snapshot.exercise)
        sections.append(f"**EXERCISE TODAY:**\n{exercise_lines}\n\n"
                        f"Total: {total_minutes} minutes, {total_burned} calories burned")

    if snapshot.weights:
        latest = snapshot.weights[0]
        oldest = snapshot.weights[-1]
        change = latest["weight_lbs"] - oldest["weight_lbs"]
        change_str = f"+{change:.1f}" if change > 0 else f"{change:.1f}"
        goal_weight = profile.target_weight or profile.weight_lbs
        sections.append(f"**WEIGHT TRACKING:**\nCurrent: {_format_number(latest['weight_lbs'])}lbs "
                        f"(logged {day_of(latest['logged_at']).strftime('%m/%d/%Y')})\n"
                        f"7-day change: {change_str}lbs\nGoal: {_format_number(goal_weight)}lbs")

    return ("\n\n**IMPORTANT - USER'S ACTIVITY TODAY:**\n\n" + "\n\n".join(sections) +
            "\n\nWhen the user asks about their progress, meals, water, exercise, or weight, reference this "
            "data. Provide encouragement and coaching based on their actual logged data. If they're doing "
            "well, praise them. If they're behind on goals, motivate them gently.")


def _onboarding_block(profile: UserProfile) -> str:
    if profile.onboarding_complete:
        return ""
    return f"""
SETUP STATUS:
{profile.name} just filled out the signup form and hasn't finished setting up with you yet.
- Open by saying hey and that you calculated their targets
- Ask 2-3 quick questions, one at a time: workout schedule, typical meals, anything they don't eat
- Once you have enough, say exactly "Got what I need, let's start tracking"
"""


def build_system_prompt(
    profile: UserProfile,
    targets: MacroTargets,
    preferences_block: str = "",
    activity_digest: str = "",
    style: PromptStyle = DEFAULT_STYLE
) -> str:
    """
    Assemble the full instruction block for one chat turn.

    Args:
        profile: the user's profile (onboarding flag included)
        targets: live macro targets for the profile
        preferences_block: output of render_preferences
        activity_digest: output of build_activity_digest
        style: persona and cadence settings

    Returns:
        System prompt text
    """
    delimiter = MESSAGE_DELIMITER
    emoji_rule = "Emojis are fine, but use them sparingly" if style.allow_emojis else "ZERO emojis - none at all"
    tone = "\n".join(f"- {rule}" for rule in style.tone_rules)
    target_weight = f"\n- Target Weight: {_format_number(profile.target_weight)} lbs" if profile.target_weight else ""
    body_fat = f"\n- Body Fat: {_format_number(profile.current_body_fat)}%" if profile.current_body_fat else ""

    prompt = f"""You are {style.persona}, {style.tagline}. You help {profile.name} track meals and hit macro targets.

USER PROFILE:
- Name: {profile.name}
- Height: {_format_height(profile.height_inches)}
- Weight: {_format_number(profile.weight_lbs)} lbs{body_fat}
- Goal: {GOALS[profile.goal_type.value]}{target_weight}

DAILY MACRO TARGETS:
- Calories: {targets.calories} cal
- Protein: {targets.protein_g}g
- Carbs: {targets.carbs_g}g
- Fats: {targets.fats_g}g

HOW YOU TEXT:
- Super short messages - break up EVERY thought into separate messages
- Use "{delimiter}" to separate each message
- Each message = ONE short sentence or phrase ({style.words_per_message} words)
{tone}

EXAMPLE:
"Got it{delimiter}Logged the chicken and rice{delimiter}Estimated: 650 cal | 45g protein | 70g carbs | 15g fat{delimiter}You're at 1200 cal today{delimiter}800 left to go"

MEAL TRACKING:
When they tell you what they ate:
1. Confirm you logged it
2. Give the estimate in ONE message, exactly: "Estimated: XXX cal | XXg protein | XXg carbs | XXg fat"
3. Tell them where they're at for the day
4. Quick tip (optional, keep it short)
Only use the "Estimated:" line when they actually ate something.

IMPORTANT RULES:
- ALWAYS use "{delimiter}" to separate EVERY message
- Break up your response into {style.min_messages}-{style.max_messages} short messages
- {emoji_rule}
- Be realistic with portions - ask if unsure
- Track by TIME not meal names (breakfast/lunch/dinner)
{_onboarding_block(profile)}
Your job: make tracking easy, text like a normal person who sends multiple short texts."""

    return prompt + preferences_block + activity_digest
