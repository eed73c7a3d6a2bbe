"""
Entry point for the Chad macro-tracking Telegram bot
"""
import logging
import os
from telegram import Update
from telegram.ext import (
    Application,
    CommandHandler,
    CallbackQueryHandler,
    MessageHandler,
    filters,
    ContextTypes
)

from chad.services.supabase_service import SupabaseService
from chad.services.openai_service import OpenAIService
from chad.services.voice_service import VoiceService
from chad.services.preference_learner import PreferenceLearner
from chad.services.conversation import ConversationOrchestrator
from chad.database.queries import DatabaseQueries
from chad.config import SUPABASE_URL, SUPABASE_KEY

from chad.bot.handlers.start import start_command, main_menu_callback, help_command
from chad.bot.handlers.profile import (
    profile_callback,
    handle_profile_name,
    handle_profile_height,
    handle_profile_weight,
    handle_profile_body_fat,
    handle_goal_callback,
    handle_profile_target_weight,
    handle_skip_callback
)
from chad.bot.handlers.food_logging import (
    log_food_callback,
    handle_food_name,
    handle_food_amount,
    handle_unit_callback,
    retry_estimate_callback,
    confirm_food_callback,
    handle_context_callback,
    cancel_food_callback,
    today_stats_callback,
    today_command,
    delete_meal_callback,
    edit_meal_callback,
    handle_meal_edit
)
from chad.bot.handlers.tracking import (
    start_log_callback,
    handle_water_amount,
    handle_weight_entry,
    handle_exercise_entry,
    manage_logs_callback,
    edit_log_callback,
    delete_log_callback,
    handle_log_edit
)
from chad.bot.handlers.chat import handle_chat_message, handle_voice_message
from chad.bot.states import BotState

logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=logging.INFO
)
logger = logging.getLogger(__name__)

TEXT_ROUTES = {
    BotState.PROFILE_NAME: handle_profile_name,
    BotState.PROFILE_HEIGHT: handle_profile_height,
    BotState.PROFILE_WEIGHT: handle_profile_weight,
    BotState.PROFILE_BODY_FAT: handle_profile_body_fat,
    BotState.PROFILE_TARGET_WEIGHT: handle_profile_target_weight,
    BotState.FOOD_NAME: handle_food_name,
    BotState.FOOD_AMOUNT: handle_food_amount,
    BotState.WATER_AMOUNT: handle_water_amount,
    BotState.WEIGHT_ENTRY: handle_weight_entry,
    BotState.EXERCISE_ENTRY: handle_exercise_entry,
    BotState.MEAL_EDIT: handle_meal_edit,
    BotState.WATER_EDIT: handle_log_edit,
    BotState.WEIGHT_EDIT: handle_log_edit,
    BotState.EXERCISE_EDIT: handle_log_edit
}
BUTTON_STATES = {BotState.PROFILE_GOAL, BotState.FOOD_UNIT, BotState.FOOD_CONFIRM, BotState.FOOD_CONTEXT}


async def route_text_message(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Send text to the active form, or to Chad when no form is open"""
    state = context.user_data.get('state', BotState.IDLE)

    if state in BUTTON_STATES:
        await update.message.reply_text("👆 Pick one of the buttons above")
        return

    handler = TEXT_ROUTES.get(state, handle_chat_message)
    await handler(update, context)


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE):
    """Log anything the handlers did not catch"""
    logger.error(f"Update {update} caused error {context.error}")

    if isinstance(update, Update) and update.effective_message:
        await update.effective_message.reply_text("❌ Something went wrong. Try again or send /start")


def build_application(telegram_token: str, openai_api_key: str, supabase_service: SupabaseService) -> Application:
    """Construct the shared services once and register all handlers"""
    openai_service = OpenAIService(openai_api_key)
    db_queries = DatabaseQueries(supabase_service.get_client())
    preference_learner = PreferenceLearner(db_queries, openai_service)

    application = Application.builder().token(telegram_token).build()

    application.bot_data['db'] = db_queries
    application.bot_data['openai'] = openai_service
    application.bot_data['voice'] = VoiceService(openai_service)
    application.bot_data['chat'] = ConversationOrchestrator(db_queries, openai_service, preference_learner)
    application.bot_data['bot_token'] = telegram_token

    # Commands
    application.add_handler(CommandHandler("start", start_command))
    application.add_handler(CommandHandler("help", help_command))
    application.add_handler(CommandHandler("today", today_command))

    # Menu
    application.add_handler(CallbackQueryHandler(main_menu_callback, pattern="^main_menu$"))
    application.add_handler(CallbackQueryHandler(help_command, pattern="^help$"))

    # Onboarding and profile
    application.add_handler(CallbackQueryHandler(profile_callback, pattern="^profile$"))
    application.add_handler(CallbackQueryHandler(handle_goal_callback, pattern="^goal_"))
    application.add_handler(CallbackQueryHandler(handle_skip_callback, pattern="^skip_"))

    # Food form and today view
    application.add_handler(CallbackQueryHandler(log_food_callback, pattern="^log_food$"))
    application.add_handler(CallbackQueryHandler(handle_unit_callback, pattern="^unit_"))
    application.add_handler(CallbackQueryHandler(retry_estimate_callback, pattern="^retry_estimate$"))
    application.add_handler(CallbackQueryHandler(confirm_food_callback, pattern="^confirm_food$"))
    application.add_handler(CallbackQueryHandler(handle_context_callback, pattern="^context_"))
    application.add_handler(CallbackQueryHandler(cancel_food_callback, pattern="^cancel_food$"))
    application.add_handler(CallbackQueryHandler(today_stats_callback, pattern="^today_stats$"))
    application.add_handler(CallbackQueryHandler(delete_meal_callback, pattern="^delete_meal_"))
    application.add_handler(CallbackQueryHandler(edit_meal_callback, pattern="^edit_meal_"))

    # Water, weight, exercise
    application.add_handler(CallbackQueryHandler(start_log_callback, pattern="^log_(water|weight|exercise)$"))
    application.add_handler(CallbackQueryHandler(manage_logs_callback, pattern="^manage_(water|weight|exercise)$"))
    application.add_handler(CallbackQueryHandler(edit_log_callback, pattern=r"^edit_(water|weight|exercise)_\d+$"))
    application.add_handler(CallbackQueryHandler(delete_log_callback, pattern=r"^delete_(water|weight|exercise)_\d+$"))

    # Messages
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, route_text_message))
    application.add_handler(MessageHandler(filters.VOICE, handle_voice_message))

    application.add_error_handler(error_handler)
    return application


def main():
    """Start the bot"""
    logger.info("Starting bot...")

    if not SUPABASE_URL or not SUPABASE_KEY:
        logger.error("SUPABASE_URL and SUPABASE_KEY must be set in .env")
        return

    supabase_service = SupabaseService(SUPABASE_URL, SUPABASE_KEY)

    # Environment first, app_settings table as fallback
    telegram_token = os.getenv("TELEGRAM_BOT_TOKEN") or supabase_service.get_secret("TELEGRAM_BOT_TOKEN")
    openai_api_key = os.getenv("OPENAI_API_KEY") or supabase_service.get_secret("OPENAI_API_KEY")

    if not telegram_token:
        logger.error("TELEGRAM_BOT_TOKEN not found")
        return

    if not openai_api_key:
        logger.error("OPENAI_API_KEY not found")
        return

    application = build_application(telegram_token, openai_api_key, supabase_service)

    logger.info("Bot is up")
    application.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()
