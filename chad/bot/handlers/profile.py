"""
Onboarding and profile handlers
"""
from telegram import Update
from telegram.ext import ContextTypes
from chad.bot.handlers.start import get_user_id
from chad.bot.keyboards.inline import InlineKeyboards
from chad.bot.states import BotState
from chad.config import GOALS
from chad.database.models import UserProfile
from chad.exceptions import ValidationError
from chad.services.profile_service import create_profile
from chad.utils.calculators import NutritionCalculator
from chad.utils.validators import DataValidator
import logging

logger = logging.getLogger(__name__)


async def _reply(update: Update, text: str, reply_markup=None):
    if update.callback_query:
        await update.callback_query.edit_message_text(text=text, reply_markup=reply_markup)
    else:
        await update.message.reply_text(text, reply_markup=reply_markup)


async def profile_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Show the profile and live macro targets"""
    query = update.callback_query
    await query.answer()

    db = context.bot_data['db']
    user_id = await get_user_id(update, context)
    row = await db.get_user_profile(user_id)

    if not row:
        context.user_data['state'] = BotState.PROFILE_NAME
        context.user_data['profile_data'] = {}
        await query.edit_message_text("No profile yet. What's your name?")
        return

    profile = UserProfile.from_row(row)
    targets = NutritionCalculator.calculate_macros(profile)
    height = int(profile.height_inches)

    message = f"""🎯 {profile.name.upper()}

📏 Height: {height // 12}'{height % 12}"
⚖️ Weight: {profile.weight_lbs} lbs
🎯 Goal: {GOALS[profile.goal_type.value]}"""
    if profile.target_weight:
        message += f"\n🏁 Target weight: {profile.target_weight} lbs"
    if profile.current_body_fat:
        message += f"\n📊 Body fat: {profile.current_body_fat}%"

    message += f"""

DAILY TARGETS:
🔥 {targets.calories} cal
🥩 {targets.protein_g}g protein
🍞 {targets.carbs_g}g carbs
🥑 {targets.fats_g}g fat"""

    await query.edit_message_text(text=message, reply_markup=InlineKeyboards.back_to_menu())


async def handle_profile_name(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Name"""
    valid, name, error = DataValidator.validate_name(update.message.text)

    if not valid:
        await update.message.reply_text(f"❌ {error}\n\nTry again:")
        return

    context.user_data.setdefault('profile_data', {})['name'] = name
    context.user_data['state'] = BotState.PROFILE_HEIGHT

    await update.message.reply_text(f"Nice to meet you {name}. How tall are you? (like 5'10\")")


async def handle_profile_height(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Height"""
    valid, height, error = DataValidator.validate_height(update.message.text)

    if not valid:
        await update.message.reply_text(f"❌ {error}\n\nTry again:")
        return

    context.user_data['profile_data']['height_inches'] = height
    context.user_data['state'] = BotState.PROFILE_WEIGHT

    await update.message.reply_text("What do you weigh right now? (lbs)")


async def handle_profile_weight(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Current weight"""
    valid, weight, error = DataValidator.validate_weight(update.message.text)

    if not valid:
        await update.message.reply_text(f"❌ {error}\n\nTry again:")
        return

    context.user_data['profile_data']['weight_lbs'] = weight
    context.user_data['state'] = BotState.PROFILE_BODY_FAT

    await update.message.reply_text(
        "Know your body fat %? Send it or skip.",
        reply_markup=InlineKeyboards.skip("body_fat")
    )


async def handle_profile_body_fat(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Optional body fat"""
    valid, body_fat, error = DataValidator.validate_body_fat(update.message.text)

    if not valid:
        await update.message.reply_text(f"❌ {error}\n\nTry again or skip:", reply_markup=InlineKeyboards.skip("body_fat"))
        return

    context.user_data['profile_data']['current_body_fat'] = body_fat
    await _ask_goal(update, context)


async def _ask_goal(update: Update, context: ContextTypes.DEFAULT_TYPE):
    context.user_data['state'] = BotState.PROFILE_GOAL
    await _reply(update, "What's the goal?", reply_markup=InlineKeyboards.goal_selection())


async def handle_goal_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Goal choice"""
    query = update.callback_query
    await query.answer()

    valid, goal, error = DataValidator.validate_goal(query.data.split('_', 1)[1])  # goal_cut -> cut
    if not valid:
        await query.edit_message_text(f"❌ {error}", reply_markup=InlineKeyboards.goal_selection())
        return

    context.user_data['profile_data']['goal_type'] = goal.value
    context.user_data['state'] = BotState.PROFILE_TARGET_WEIGHT

    await query.edit_message_text(
        "Got a target weight? Send it (lbs) or skip.",
        reply_markup=InlineKeyboards.skip("target_weight")
    )


async def handle_profile_target_weight(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Optional target weight, then the profile is created"""
    valid, weight, error = DataValidator.validate_weight(update.message.text)

    if not valid:
        await update.message.reply_text(f"❌ {error}\n\nTry again or skip:", reply_markup=InlineKeyboards.skip("target_weight"))
        return

    context.user_data['profile_data']['target_weight'] = weight
    await finish_onboarding(update, context)


async def handle_skip_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Skip body fat or target weight"""
    query = update.callback_query
    await query.answer()

    step = query.data[len('skip_'):]
    if step == "body_fat":
        await _ask_goal(update, context)
    elif step == "target_weight":
        await finish_onboarding(update, context)


async def finish_onboarding(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Store the profile and show the targets"""
    db = context.bot_data['db']
    user_id = await get_user_id(update, context)
    profile_data = context.user_data.get('profile_data', {})

    try:
        _, targets = await create_profile(db, user_id, profile_data)
    except ValidationError as e:
        logger.warning(f"Onboarding data incomplete for user {user_id}: {e}")
        context.user_data['state'] = BotState.PROFILE_NAME
        context.user_data['profile_data'] = {}
        await _reply(update, f"❌ {e}\n\nLet's start over. What's your name?")
        return
    except Exception as e:
        logger.error(f"Failed to create profile for user {user_id}: {e}")
        await _reply(update, "❌ Couldn't save your profile. Try /start again.")
        return

    context.user_data['state'] = BotState.IDLE
    context.user_data.pop('profile_data', None)

    await _reply(
        update,
        f"""✅ You're set up.

DAILY TARGETS:
🔥 {targets.calories} cal
🥩 {targets.protein_g}g protein
🍞 {targets.carbs_g}g carbs
🥑 {targets.fats_g}g fat

Say hi to Chad, he has a couple of questions for you.""",
        reply_markup=InlineKeyboards.main_menu()
    )
