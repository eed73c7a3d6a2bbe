"""
Inline keyboards for bot navigation
"""
from typing import Dict, List, Tuple
from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from chad.config import MEAL_CONTEXTS, WEIGHT_UNITS


class InlineKeyboards:
    """Builders for inline keyboards"""

    @staticmethod
    def main_menu() -> InlineKeyboardMarkup:
        """Main menu"""
        keyboard = [
            [
                InlineKeyboardButton("🍽 Log food", callback_data="log_food"),
                InlineKeyboardButton("📅 Today", callback_data="today_stats")
            ],
            [
                InlineKeyboardButton("💧 Water", callback_data="log_water"),
                InlineKeyboardButton("⚖️ Weight", callback_data="log_weight"),
                InlineKeyboardButton("🏃 Exercise", callback_data="log_exercise")
            ],
            [
                InlineKeyboardButton("🎯 My targets", callback_data="profile"),
                InlineKeyboardButton("ℹ️ Help", callback_data="help")
            ]
        ]
        return InlineKeyboardMarkup(keyboard)

    @staticmethod
    def goal_selection() -> InlineKeyboardMarkup:
        """Goal choice"""
        keyboard = [
            [InlineKeyboardButton("📉 Cut", callback_data="goal_cut")],
            [InlineKeyboardButton("⚖️ Maintain", callback_data="goal_maintain")],
            [InlineKeyboardButton("📈 Bulk", callback_data="goal_bulk")]
        ]
        return InlineKeyboardMarkup(keyboard)

    @staticmethod
    def skip(action: str) -> InlineKeyboardMarkup:
        """Skip an optional onboarding step"""
        return InlineKeyboardMarkup([[InlineKeyboardButton("Skip", callback_data=f"skip_{action}")]])

    @staticmethod
    def unit_selection() -> InlineKeyboardMarkup:
        """Unit for the manual food form"""
        keyboard = [[InlineKeyboardButton(unit, callback_data=f"unit_{unit}") for unit in WEIGHT_UNITS]]
        return InlineKeyboardMarkup(keyboard)

    @staticmethod
    def food_log_confirm() -> InlineKeyboardMarkup:
        """Confirm an estimate"""
        keyboard = [
            [
                InlineKeyboardButton("✅ Log it", callback_data="confirm_food"),
                InlineKeyboardButton("❌ Cancel", callback_data="cancel_food")
            ]
        ]
        return InlineKeyboardMarkup(keyboard)

    @staticmethod
    def retry_estimate() -> InlineKeyboardMarkup:
        keyboard = [
            [
                InlineKeyboardButton("🔄 Try again", callback_data="retry_estimate"),
                InlineKeyboardButton("❌ Cancel", callback_data="cancel_food")
            ]
        ]
        return InlineKeyboardMarkup(keyboard)

    @staticmethod
    def context_selection() -> InlineKeyboardMarkup:
        """Optional meal context tag"""
        keyboard = [
            [InlineKeyboardButton(label, callback_data=f"context_{key}")]
            for key, label in MEAL_CONTEXTS.items()
        ]
        keyboard.append([InlineKeyboardButton("No tag", callback_data="context_none")])
        return InlineKeyboardMarkup(keyboard)

    @staticmethod
    def today_stats_actions(meals: List[Dict]) -> InlineKeyboardMarkup:
        """Today view, with edit and delete buttons per meal"""
        keyboard = [
            [
                InlineKeyboardButton(f"✏️ {meal['meal_name'][:30]}", callback_data=f"edit_meal_{meal['id']}"),
                InlineKeyboardButton("🗑", callback_data=f"delete_meal_{meal['id']}")
            ]
            for meal in meals
        ]
        keyboard.append([
            InlineKeyboardButton("💧 Water log", callback_data="manage_water"),
            InlineKeyboardButton("⚖️ Weight log", callback_data="manage_weight"),
            InlineKeyboardButton("🏃 Exercise log", callback_data="manage_exercise")
        ])
        keyboard.append([
            InlineKeyboardButton("🍽 Log food", callback_data="log_food"),
            InlineKeyboardButton("🏠 Main menu", callback_data="main_menu")
        ])
        return InlineKeyboardMarkup(keyboard)

    @staticmethod
    def log_entry_actions(kind: str, entries: List[Tuple[int, str]]) -> InlineKeyboardMarkup:
        """Edit and delete buttons for water, weight or exercise entries"""
        keyboard = [
            [
                InlineKeyboardButton(f"✏️ {label[:30]}", callback_data=f"edit_{kind}_{entry_id}"),
                InlineKeyboardButton("🗑", callback_data=f"delete_{kind}_{entry_id}")
            ]
            for entry_id, label in entries
        ]
        keyboard.append([
            InlineKeyboardButton("📅 Today", callback_data="today_stats"),
            InlineKeyboardButton("🏠 Main menu", callback_data="main_menu")
        ])
        return InlineKeyboardMarkup(keyboard)

    @staticmethod
    def back_to_menu() -> InlineKeyboardMarkup:
        """Back to the main menu"""
        keyboard = [[InlineKeyboardButton("🏠 Main menu", callback_data="main_menu")]]
        return InlineKeyboardMarkup(keyboard)
