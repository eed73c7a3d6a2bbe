"""
/start, /help and the main menu
"""
from telegram import Update
from telegram.ext import ContextTypes
from chad.bot.keyboards.inline import InlineKeyboards
from chad.bot.states import BotState
import logging

logger = logging.getLogger(__name__)


async def get_user_id(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Database user id for the Telegram user, cached in user_data"""
    user_id = context.user_data.get('user_id')
    if user_id:
        return user_id

    user = update.effective_user
    db = context.bot_data['db']
    user_data = await db.get_or_create_user(
        telegram_id=user.id,
        username=user.username,
        first_name=user.first_name
    )
    context.user_data['user_id'] = user_data['id']
    return user_data['id']


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """/start"""
    user = update.effective_user
    db = context.bot_data['db']

    user_id = await get_user_id(update, context)
    profile = await db.get_user_profile(user_id)

    if not profile:
        context.user_data['state'] = BotState.PROFILE_NAME
        context.user_data['profile_data'] = {}
        await update.message.reply_text(
            "Hey, I'm Chad. I'll track your meals and macros over text.\n\n"
            "First a few quick questions. What's your name?"
        )
    else:
        context.user_data['state'] = BotState.IDLE
        await update.message.reply_text(
            f"Welcome back {profile['name']}. Just text me what you ate, or pick something below.",
            reply_markup=InlineKeyboards.main_menu()
        )

    logger.info(f"User {user.id} ({user.username}) started the bot")


async def main_menu_callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Back to the main menu"""
    query = update.callback_query
    await query.answer()

    context.user_data['state'] = BotState.IDLE
    await query.edit_message_text(
        text="🏠 Main menu\n\nPick something, or just text me.",
        reply_markup=InlineKeyboards.main_menu()
    )


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """/help"""
    help_text = """ℹ️ HELP

Just text me what you ate and I'll estimate and log it.
You can send voice notes too.

🍽 Log food - enter a food and amount, I estimate the macros
📅 Today - meals, totals, what's left, delete a meal
💧 Water / ⚖️ Weight / 🏃 Exercise - quick logs
🎯 My targets - your profile and daily macros

Commands:
/start - main menu
/help - this message
/today - today's stats"""

    if update.message:
        await update.message.reply_text(help_text, reply_markup=InlineKeyboards.back_to_menu())
    else:
        query = update.callback_query
        await query.answer()
        await query.edit_message_text(text=help_text, reply_markup=InlineKeyboards.back_to_menu())
