"""
Conversation states kept in context.user_data['state']
"""
from enum import Enum


class BotState(str, Enum):
    """Bot states"""
    # Free chat with Chad
    IDLE = "idle"

    # Onboarding
    PROFILE_NAME = "profile_name"
    PROFILE_HEIGHT = "profile_height"
    PROFILE_WEIGHT = "profile_weight"
    PROFILE_BODY_FAT = "profile_body_fat"
    PROFILE_GOAL = "profile_goal"
    PROFILE_TARGET_WEIGHT = "profile_target_weight"

    # Manual food form
    FOOD_NAME = "food_name"
    FOOD_AMOUNT = "food_amount"
    FOOD_UNIT = "food_unit"
    FOOD_CONFIRM = "food_confirm"
    FOOD_CONTEXT = "food_context"

    # Other logs
    WATER_AMOUNT = "water_amount"
    WEIGHT_ENTRY = "weight_entry"
    EXERCISE_ENTRY = "exercise_entry"

    # Edits from the today view and the log lists
    MEAL_EDIT = "meal_edit"
    WATER_EDIT = "water_edit"
    WEIGHT_EDIT = "weight_edit"
    EXERCISE_EDIT = "exercise_edit"
