"""Tests for system prompt assembly."""

from chad.database.models import GoalType, MacroTargets, UserProfile
from chad.services.prompt_composer import (
    ActivitySnapshot,
    PromptStyle,
    build_activity_digest,
    build_system_prompt,
)

TARGETS = MacroTargets(calories=2005, protein_g=180, carbs_g=181, fats_g=62)


def make_profile(**overrides):
    fields = dict(name="Sam", height_inches=70, weight_lbs=180, goal_type=GoalType.CUT,
                  target_weight=170, onboarding_complete=True)
    fields.update(overrides)
    return UserProfile(**fields)


class TestSystemPrompt:

    def test_profile_and_targets(self):
        prompt = build_system_prompt(make_profile(), TARGETS)

        assert "- Name: Sam" in prompt
        assert "- Height: 5'10\"" in prompt
        assert "- Weight: 180 lbs" in prompt
        assert "- Goal: Lose fat while maintaining muscle" in prompt
        assert "- Target Weight: 170 lbs" in prompt
        assert "- Calories: 2005 cal" in prompt
        assert "- Protein: 180g" in prompt
        assert "- Carbs: 181g" in prompt
        assert "- Fats: 62g" in prompt

    def test_cadence_rules(self):
        prompt = build_system_prompt(make_profile(), TARGETS)

        assert 'Use "||| " to separate each message' in prompt
        assert "Estimated: XXX cal | XXg protein | XXg carbs | XXg fat" in prompt
        assert "3-5 short messages" in prompt
        assert "ZERO emojis" in prompt

    def test_style_overrides(self):
        style = PromptStyle(persona="Coach", allow_emojis=True, min_messages=2, max_messages=4)
        prompt = build_system_prompt(make_profile(), TARGETS, style=style)

        assert prompt.startswith("You are Coach")
        assert "2-4 short messages" in prompt
        assert "ZERO emojis" not in prompt

    def test_onboarding_block_only_when_incomplete(self):
        assert "SETUP STATUS" not in build_system_prompt(make_profile(), TARGETS)

        prompt = build_system_prompt(make_profile(onboarding_complete=False), TARGETS)
        assert "SETUP STATUS" in prompt
        assert "Got what I need, let's start tracking" in prompt

    def test_blocks_appended_in_order(self):
        prompt = build_system_prompt(make_profile(), TARGETS,
                                     preferences_block="\nPREFS", activity_digest="\nDIGEST")
        assert prompt.endswith("\nPREFS\nDIGEST")

    def test_no_optional_lines(self):
        prompt = build_system_prompt(make_profile(target_weight=None), TARGETS)
        assert "Target Weight" not in prompt
        assert "Body Fat" not in prompt


class TestActivityDigest:

    def test_empty_snapshot(self):
        assert build_activity_digest(ActivitySnapshot(), TARGETS, make_profile()) == ""

    def test_meals_totals_and_remaining(self):
        snapshot = ActivitySnapshot(
            meals=[
                {"meal_name": "eggs", "logged_at": "2026-03-14T08:05:00", "context": None,
                 "calories": 450, "protein_g": 30, "carbs_g": 40, "fats_g": 10},
                {"meal_name": "shake", "logged_at": "2026-03-14T17:30:00", "context": "post-workout",
                 "calories": 200, "protein_g": 25.5, "carbs_g": 10, "fats_g": 3},
            ],
            daily_stats={"total_calories": 650, "total_protein_g": 55.5, "total_carbs_g": 50, "total_fats_g": 13},
        )
        digest = build_activity_digest(snapshot, TARGETS, make_profile())

        assert digest.startswith("\n\n**IMPORTANT - USER'S ACTIVITY TODAY:**")
        assert "- 8:05 AM: eggs - 450cal, 30g protein, 40g carbs, 10g fat" in digest
        assert "- 5:30 PM [post-workout]: shake - 200cal, 25.5g protein" in digest
        assert "Current totals: 650cal" in digest
        assert "Remaining: 1355cal, 124g protein, 131g carbs, 49g fat" in digest

    def test_water(self):
        snapshot = ActivitySnapshot(water=[{"ounces": 16}, {"ounces": 16}])
        digest = build_activity_digest(snapshot, TARGETS, make_profile())

        assert "**WATER INTAKE TODAY:**" in digest
        assert "Total: 32oz / 64oz goal (50%)" in digest
        assert "**MEALS TODAY:**" not in digest

    def test_exercise(self):
        snapshot = ActivitySnapshot(exercise=[
            {"exercise_name": "Running", "exercise_type": "cardio", "duration_minutes": 30, "calories_burned": 300},
            {"exercise_name": "Squats", "exercise_type": None, "duration_minutes": 20, "calories_burned": 150},
        ])
        digest = build_activity_digest(snapshot, TARGETS, make_profile())

        assert "- Running (cardio): 30min, 300cal burned" in digest
        assert "- Squats (other): 20min, 150cal burned" in digest
        assert "Total: 50 minutes, 450 calories burned" in digest

    def test_weight_trend(self):
        snapshot = ActivitySnapshot(weights=[
            {"weight_lbs": 178.5, "logged_at": "2026-03-14T07:00:00"},
            {"weight_lbs": 180, "logged_at": "2026-03-09T07:00:00"},
        ])
        digest = build_activity_digest(snapshot, TARGETS, make_profile())

        assert "Current: 178.5lbs (logged 03/14/2026)" in digest
        assert "7-day change: -1.5lbs" in digest
        assert "Goal: 170lbs" in digest
