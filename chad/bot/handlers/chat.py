"""
Texting Chad: free text and voice notes
"""
from telegram import Update
from telegram.constants import ChatAction
from telegram.ext import ContextTypes
from chad.bot.handlers.start import get_user_id
from chad.bot.states import BotState
from chad.exceptions import ChatTurnError, ValidationError
import logging
import os
import tempfile

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "Sorry, I'm having trouble responding right now. Try again in a sec."


async def handle_chat_message(update: Update, context: ContextTypes.DEFAULT_TYPE, text: str = None):
    """Run one chat turn and send each bubble as its own message"""
    text = text if text is not None else update.message.text
    user_id = await get_user_id(update, context)
    orchestrator = context.bot_data['chat']

    await update.effective_chat.send_action(ChatAction.TYPING)

    try:
        result = await orchestrator.handle_message(user_id, text)
    except ValidationError as e:
        logger.info(f"Chat input rejected for user {user_id}: {e}")
        if not await context.bot_data['db'].get_user_profile(user_id):
            context.user_data['state'] = BotState.PROFILE_NAME
            context.user_data['profile_data'] = {}
            await update.message.reply_text("Let's set you up first. What's your name?")
        else:
            await update.message.reply_text(str(e))
        return
    except ChatTurnError:
        await update.message.reply_text(FALLBACK_MESSAGE)
        return
    except Exception as e:
        logger.error(f"Chat turn crashed for user {user_id}: {e}")
        await update.message.reply_text(FALLBACK_MESSAGE)
        return

    for bubble in result.texts:
        await update.message.reply_text(bubble)


async def handle_voice_message(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Transcribe a voice note and treat it as a typed message"""
    voice = update.message.voice
    voice_service = context.bot_data['voice']
    file_path = os.path.join(tempfile.gettempdir(), f"chad_voice_{update.effective_user.id}_{voice.file_unique_id}.ogg")

    try:
        file = await context.bot.get_file(voice.file_id)
        success = await voice_service.download_voice_file(file.file_path, file_path, context.bot_data['bot_token'])
    except Exception as e:
        logger.error(f"Failed to fetch voice note: {e}")
        success = False

    if not success:
        await update.message.reply_text("❌ Couldn't download that voice note")
        return

    text = await voice_service.transcribe_voice(file_path)
    if not text:
        await update.message.reply_text("❌ Couldn't make that out. Try again?")
        return

    await update.message.reply_text(f"📝 \"{text}\"")
    await handle_chat_message(update, context, text=text)
