"""
Water, weight and exercise logs
"""
from telegram import Update
from telegram.ext import ContextTypes
from chad.bot.handlers.start import get_user_id
from chad.bot.keyboards.inline import InlineKeyboards
from chad.bot.states import BotState
from chad.config import WATER_GOAL_OZ
from chad.exceptions import NotFoundError
from chad.utils.validators import DataValidator
from datetime import date
import logging

logger = logging.getLogger(__name__)

PROMPTS = {
    "log_water": (BotState.WATER_AMOUNT, "💧 How many ounces?"),
    "log_weight": (BotState.WEIGHT_ENTRY, "⚖️ Today's weight in lbs? You can add a note after a comma."),
    "log_exercise": (BotState.EXERCISE_ENTRY, "🏃 Send it like: running, 30, 300\n(name, minutes, calories, optional type)")
}


async def start_log_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Ask for a water, weight or exercise entry"""
    query = update.callback_query
    await query.answer()

    state, prompt = PROMPTS[query.data]
    context.user_data['state'] = state
    await query.edit_message_text(text=prompt, reply_markup=InlineKeyboards.back_to_menu())


async def handle_water_amount(update: Update, context: ContextTypes.DEFAULT_TYPE):
    valid, ounces, error = DataValidator.validate_ounces(update.message.text)

    if not valid:
        await update.message.reply_text(f"❌ {error}\n\nTry again:")
        return

    db = context.bot_data['db']
    user_id = await get_user_id(update, context)
    await db.create_water_log(user_id, ounces)

    total = sum(log.get('ounces', 0) or 0 for log in await db.get_water_logs_by_date(user_id, date.today()))
    context.user_data['state'] = BotState.IDLE

    await update.message.reply_text(
        f"✅ {ounces:g} oz logged. {total:g} / {WATER_GOAL_OZ} oz today.",
        reply_markup=InlineKeyboards.main_menu()
    )


async def handle_weight_entry(update: Update, context: ContextTypes.DEFAULT_TYPE):
    weight_str, _, notes = update.message.text.partition(',')
    valid, weight, error = DataValidator.validate_weight(weight_str)

    if not valid:
        await update.message.reply_text(f"❌ {error}\n\nTry again:")
        return

    db = context.bot_data['db']
    user_id = await get_user_id(update, context)
    await db.create_weight_log(user_id, weight, notes=notes.strip() or None)

    context.user_data['state'] = BotState.IDLE
    await update.message.reply_text(f"✅ {weight:g} lbs logged.", reply_markup=InlineKeyboards.main_menu())


async def handle_exercise_entry(update: Update, context: ContextTypes.DEFAULT_TYPE):
    valid, exercise, error = DataValidator.validate_exercise(update.message.text)

    if not valid:
        await update.message.reply_text(f"❌ {error}\n\nTry again:")
        return

    db = context.bot_data['db']
    user_id = await get_user_id(update, context)
    await db.create_exercise_log(user_id, exercise)

    context.user_data['state'] = BotState.IDLE
    await update.message.reply_text(
        f"✅ {exercise['exercise_name']}: {exercise['duration_minutes']} min, "
        f"{exercise['calories_burned']} cal logged.",
        reply_markup=InlineKeyboards.main_menu()
    )


# ===== EDIT / DELETE =====
EDIT_STATES = {
    "water": BotState.WATER_EDIT,
    "weight": BotState.WEIGHT_EDIT,
    "exercise": BotState.EXERCISE_EDIT
}
EDIT_PROMPTS = {
    "water": "💧 New amount in ounces?",
    "weight": "⚖️ New weight in lbs? You can add a note after a comma.",
    "exercise": "🏃 Send the new entry like: running, 30, 300\n(name, minutes, calories, optional type)"
}
LOG_TITLES = {
    "water": "💧 Water today",
    "weight": "⚖️ Weight, last 7 days",
    "exercise": "🏃 Exercise today"
}


def describe_log(kind: str, row: dict) -> str:
    """One-line label for a water, weight or exercise entry"""
    if kind == "water":
        return f"{row.get('ounces', 0):g} oz"
    if kind == "weight":
        day = str(row.get('logged_at', ''))[:10]
        note = f" ({row['notes']})" if row.get('notes') else ""
        return f"{day}: {row.get('weight_lbs', 0):g} lbs{note}"
    return (f"{row.get('exercise_name', '')}: {row.get('duration_minutes', 0)} min, "
            f"{row.get('calories_burned', 0)} cal")


async def _list_logs(db, kind: str, user_id: int):
    if kind == "water":
        return await db.get_water_logs_by_date(user_id, date.today())
    if kind == "exercise":
        return await db.get_exercise_logs_by_date(user_id, date.today())
    return await db.get_recent_weight_logs(user_id)


async def _logs_view(db, kind: str, user_id: int):
    rows = await _list_logs(db, kind, user_id)
    text = LOG_TITLES[kind] + "\n\n"
    text += "\n".join(f"• {describe_log(kind, row)}" for row in rows) if rows else "Nothing logged."
    return text, InlineKeyboards.log_entry_actions(kind, [(row['id'], describe_log(kind, row)) for row in rows])


async def manage_logs_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """List water, weight or exercise entries with edit and delete buttons"""
    query = update.callback_query
    await query.answer()

    kind = query.data[len('manage_'):]
    user_id = await get_user_id(update, context)
    text, keyboard = await _logs_view(context.bot_data['db'], kind, user_id)
    await query.edit_message_text(text=text, reply_markup=keyboard)


async def edit_log_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Ask for the new value of one entry"""
    query = update.callback_query
    await query.answer()

    _, kind, log_id = query.data.split('_', 2)
    context.user_data['state'] = EDIT_STATES[kind]
    context.user_data['editing_log'] = (kind, int(log_id))

    await query.edit_message_text(text=EDIT_PROMPTS[kind], reply_markup=InlineKeyboards.back_to_menu())


async def delete_log_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    query = update.callback_query
    await query.answer()

    _, kind, log_id = query.data.split('_', 2)
    db = context.bot_data['db']
    user_id = await get_user_id(update, context)
    delete = {"water": db.delete_water_log, "weight": db.delete_weight_log, "exercise": db.delete_exercise_log}[kind]

    try:
        row = await delete(int(log_id), user_id)
        prefix = f"🗑 Removed {describe_log(kind, row)}\n\n"
    except NotFoundError:
        prefix = "❌ That entry is already gone\n\n"

    text, keyboard = await _logs_view(db, kind, user_id)
    await query.edit_message_text(text=prefix + text, reply_markup=keyboard)


async def handle_log_edit(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """New value for the entry picked in edit_log_callback"""
    editing = context.user_data.get('editing_log')
    if not editing:
        context.user_data['state'] = BotState.IDLE
        await update.message.reply_text("❌ Lost track of that entry. Pick it again.",
                                        reply_markup=InlineKeyboards.main_menu())
        return

    kind, log_id = editing
    db = context.bot_data['db']

    if kind == "water":
        valid, value, error = DataValidator.validate_ounces(update.message.text)
    elif kind == "weight":
        weight_str, _, notes = update.message.text.partition(',')
        valid, value, error = DataValidator.validate_weight(weight_str)
    else:
        valid, value, error = DataValidator.validate_exercise(update.message.text)

    if not valid:
        await update.message.reply_text(f"❌ {error}\n\nTry again:")
        return

    user_id = await get_user_id(update, context)
    context.user_data['state'] = BotState.IDLE
    context.user_data.pop('editing_log', None)

    try:
        if kind == "water":
            row = await db.update_water_log(log_id, user_id, value)
        elif kind == "weight":
            row = await db.update_weight_log(log_id, user_id, value, notes=notes.strip() or None)
        else:
            row = await db.update_exercise_log(log_id, user_id, value)
        prefix = f"✅ Updated: {describe_log(kind, row)}\n\n"
    except NotFoundError:
        prefix = "❌ That entry is already gone\n\n"

    text, keyboard = await _logs_view(db, kind, user_id)
    await update.message.reply_text(prefix + text, reply_markup=keyboard)
