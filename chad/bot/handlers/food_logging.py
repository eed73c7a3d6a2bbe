"""
Manual food logging and the today view
"""
from telegram import Update
from telegram.ext import ContextTypes
from chad.bot.handlers.start import get_user_id
from chad.bot.keyboards.inline import InlineKeyboards
from chad.bot.states import BotState
from chad.config import MEAL_CONTEXTS, WATER_GOAL_OZ
from chad.database.models import UserProfile
from chad.exceptions import ChadError, NotFoundError
from chad.utils.calculators import NutritionCalculator
from chad.utils.validators import DataValidator
from datetime import date, datetime
import logging

logger = logging.getLogger(__name__)


async def log_food_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Start the food form"""
    query = update.callback_query
    await query.answer()

    context.user_data['state'] = BotState.FOOD_NAME
    context.user_data['pending_food'] = {}

    await query.edit_message_text(
        text="🍽 What did you eat? (e.g. \"grilled chicken breast\")",
        reply_markup=InlineKeyboards.back_to_menu()
    )


async def handle_food_name(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Food name"""
    name = update.message.text.strip()
    if not name:
        await update.message.reply_text("❌ Send the food name")
        return

    context.user_data.setdefault('pending_food', {})['food_name'] = name[:100]
    context.user_data['state'] = BotState.FOOD_AMOUNT

    await update.message.reply_text("How much? Just the number, I'll ask the unit next.")


async def handle_food_amount(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Food amount"""
    valid, amount, error = DataValidator.validate_amount(update.message.text)

    if not valid:
        await update.message.reply_text(f"❌ {error}\n\nTry again:")
        return

    context.user_data['pending_food']['amount'] = amount
    context.user_data['state'] = BotState.FOOD_UNIT

    await update.message.reply_text("Unit?", reply_markup=InlineKeyboards.unit_selection())


async def handle_unit_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Unit choice, then estimate"""
    query = update.callback_query
    await query.answer()

    valid, unit, error = DataValidator.validate_unit(query.data.split('_', 1)[1])
    if not valid:
        await query.edit_message_text(f"❌ {error}", reply_markup=InlineKeyboards.unit_selection())
        return

    context.user_data['pending_food']['unit'] = unit
    await _estimate_pending_food(update, context)


async def retry_estimate_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Retry a failed estimate"""
    query = update.callback_query
    await query.answer()
    await _estimate_pending_food(update, context)


async def _estimate_pending_food(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    pending = context.user_data.get('pending_food') or {}

    if not {'food_name', 'amount', 'unit'} <= set(pending):
        context.user_data['state'] = BotState.IDLE
        await query.edit_message_text("❌ Lost track of that food. Start again.", reply_markup=InlineKeyboards.main_menu())
        return

    await query.edit_message_text("⏳ Estimating macros...")

    try:
        macros = await context.bot_data['openai'].estimate_macros(pending['food_name'], pending['amount'], pending['unit'])
    except ChadError as e:
        logger.error(f"Macro estimate failed for {pending['food_name']!r}: {e}")
        await query.edit_message_text(
            "❌ Couldn't estimate that one. Try again?",
            reply_markup=InlineKeyboards.retry_estimate()
        )
        return

    pending.update(macros)
    context.user_data['state'] = BotState.FOOD_CONFIRM

    await query.edit_message_text(
        text=f"""📊 {pending['amount']:g} {pending['unit']} {pending['food_name']}

🔥 {macros['calories']} cal
🥩 {macros['protein']}g protein
🍞 {macros['carbs']}g carbs
🥑 {macros['fats']}g fat

Log it?""",
        reply_markup=InlineKeyboards.food_log_confirm()
    )


async def confirm_food_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Confirmed, ask for the optional context tag"""
    query = update.callback_query
    await query.answer()

    if not context.user_data.get('pending_food'):
        await query.edit_message_text("❌ Nothing to log", reply_markup=InlineKeyboards.main_menu())
        return

    context.user_data['state'] = BotState.FOOD_CONTEXT
    await query.edit_message_text("When was this?", reply_markup=InlineKeyboards.context_selection())


async def handle_context_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Save the meal with its context tag"""
    query = update.callback_query
    await query.answer()

    pending = context.user_data.get('pending_food') or {}
    if 'calories' not in pending:
        await query.edit_message_text("❌ Nothing to log", reply_markup=InlineKeyboards.main_menu())
        return

    valid, meal_context, error = DataValidator.validate_context(query.data.split('_', 1)[1])
    if not valid:
        await query.edit_message_text(f"❌ {error}", reply_markup=InlineKeyboards.context_selection())
        return

    db = context.bot_data['db']
    user_id = await get_user_id(update, context)

    try:
        await db.create_meal_log(
            user_id,
            f"{pending['amount']:g} {pending['unit']} {pending['food_name']}",
            calories=pending['calories'],
            protein_g=pending['protein'],
            carbs_g=pending['carbs'],
            fats_g=pending['fats'],
            context=meal_context
        )
    except Exception as e:
        logger.error(f"Failed to save meal for user {user_id}: {e}")
        await query.edit_message_text("❌ Couldn't save that. Try again.", reply_markup=InlineKeyboards.back_to_menu())
        return

    context.user_data['state'] = BotState.IDLE
    context.user_data.pop('pending_food', None)

    message, meals = await build_today_message(db, user_id)
    await query.edit_message_text(
        text="✅ Logged!\n\n" + message,
        reply_markup=InlineKeyboards.today_stats_actions(meals)
    )


async def cancel_food_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Cancel the food form"""
    query = update.callback_query
    await query.answer()

    context.user_data['state'] = BotState.IDLE
    context.user_data.pop('pending_food', None)

    await query.edit_message_text("❌ Cancelled", reply_markup=InlineKeyboards.main_menu())


async def build_today_message(db, user_id: int):
    """
    Text for the today view.

    Returns:
        (message, today's meal rows)
    """
    today = date.today()
    meals = await db.get_meal_logs_by_date(user_id, today)
    stats = await db.get_daily_stats(user_id, today) or {}
    water = await db.get_water_logs_by_date(user_id, today)
    exercise = await db.get_exercise_logs_by_date(user_id, today)
    profile_row = await db.get_user_profile(user_id)

    message = "📅 TODAY\n"

    if profile_row:
        targets = NutritionCalculator.calculate_macros(UserProfile.from_row(profile_row))
        left = NutritionCalculator.remaining(targets, stats)
        message += f"""
🔥 {stats.get('total_calories', 0):.0f} / {targets.calories} cal ({left['calories']} left)
🥩 {stats.get('total_protein_g', 0):.0f} / {targets.protein_g}g protein
🍞 {stats.get('total_carbs_g', 0):.0f} / {targets.carbs_g}g carbs
🥑 {stats.get('total_fats_g', 0):.0f} / {targets.fats_g}g fat
"""

    if meals:
        message += "\n🕐 Meals:\n"
        for meal in meals:
            time = datetime.fromisoformat(str(meal['logged_at'])).strftime("%H:%M")
            tag = f" [{MEAL_CONTEXTS[meal['context']]}]" if meal.get('context') in MEAL_CONTEXTS else ""
            message += f"• {time}{tag} {meal['meal_name'][:50]} - {meal['calories']:.0f} cal\n"
    else:
        message += "\nNo meals yet.\n"

    total_water = sum(log.get('ounces', 0) or 0 for log in water)
    message += f"\n💧 {total_water:g} / {WATER_GOAL_OZ} oz water"

    if exercise:
        minutes = sum(ex.get('duration_minutes', 0) or 0 for ex in exercise)
        burned = sum(ex.get('calories_burned', 0) or 0 for ex in exercise)
        message += f"\n🏃 {minutes} min, {burned} cal burned"

    return message, meals


async def today_stats_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Today view from the menu"""
    query = update.callback_query
    await query.answer()

    db = context.bot_data['db']
    user_id = await get_user_id(update, context)
    message, meals = await build_today_message(db, user_id)

    await query.edit_message_text(text=message, reply_markup=InlineKeyboards.today_stats_actions(meals))


async def today_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """/today"""
    db = context.bot_data['db']
    user_id = await get_user_id(update, context)
    message, meals = await build_today_message(db, user_id)

    await update.message.reply_text(message, reply_markup=InlineKeyboards.today_stats_actions(meals))


async def delete_meal_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Delete one meal from the today view"""
    query = update.callback_query
    await query.answer()

    db = context.bot_data['db']
    user_id = await get_user_id(update, context)
    meal_id = int(query.data[len('delete_meal_'):])

    try:
        meal = await db.delete_meal_log(meal_id, user_id)
        prefix = f"🗑 Removed {meal['meal_name'][:40]}\n\n"
    except NotFoundError:
        prefix = "❌ That meal is already gone\n\n"

    message, meals = await build_today_message(db, user_id)
    await query.edit_message_text(text=prefix + message, reply_markup=InlineKeyboards.today_stats_actions(meals))


async def edit_meal_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Ask for the new values of one meal from the today view"""
    query = update.callback_query
    await query.answer()

    db = context.bot_data['db']
    user_id = await get_user_id(update, context)
    meal_id = int(query.data[len('edit_meal_'):])

    try:
        meal = await db.get_meal_log(meal_id, user_id)
    except NotFoundError:
        message, meals = await build_today_message(db, user_id)
        await query.edit_message_text(
            text="❌ That meal is already gone\n\n" + message,
            reply_markup=InlineKeyboards.today_stats_actions(meals)
        )
        return

    context.user_data['state'] = BotState.MEAL_EDIT
    context.user_data['editing_meal'] = meal_id

    await query.edit_message_text(
        text=f"""✏️ {meal['meal_name'][:50]}
Now: {meal['calories']:.0f} cal, {meal['protein_g']:g}g protein, {meal['carbs_g']:g}g carbs, {meal['fats_g']:g}g fat

Send the new values like: 450, 30, 40, 10
Put a name first to rename it: eggs and toast, 450, 30, 40, 10""",
        reply_markup=InlineKeyboards.back_to_menu()
    )


async def handle_meal_edit(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """New meal values; daily totals follow through update_meal_log"""
    valid, fields, error = DataValidator.validate_meal_edit(update.message.text)

    if not valid:
        await update.message.reply_text(f"❌ {error}\n\nTry again:")
        return

    db = context.bot_data['db']
    user_id = await get_user_id(update, context)
    meal_id = context.user_data.pop('editing_meal', None)
    context.user_data['state'] = BotState.IDLE

    try:
        if meal_id is None:
            raise NotFoundError("No meal being edited")
        meal = await db.update_meal_log(meal_id, user_id, **fields)
        prefix = f"✅ Updated {meal['meal_name'][:40]}\n\n"
    except NotFoundError:
        prefix = "❌ That meal is already gone\n\n"

    message, meals = await build_today_message(db, user_id)
    await update.message.reply_text(prefix + message, reply_markup=InlineKeyboards.today_stats_actions(meals))
