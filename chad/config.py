"""
Application configuration
"""
import os
from dotenv import load_dotenv

load_dotenv()

# Supabase settings
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# OpenAI settings
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
TRANSCRIPTION_MODEL = os.getenv("TRANSCRIPTION_MODEL", "whisper-1")

CHAT_TEMPERATURE = float(os.getenv("CHAT_TEMPERATURE", "0.7"))
CHAT_MAX_TOKENS = int(os.getenv("CHAT_MAX_TOKENS", "300"))
PREFERENCE_TEMPERATURE = 0.3
PREFERENCE_MAX_TOKENS = 300
ESTIMATE_TEMPERATURE = 0.3
ESTIMATE_MAX_TOKENS = 150

# Conversation windows
CHAT_HISTORY_LIMIT = 20    # messages sent along with the system prompt
PREFERENCE_CONTEXT_TURNS = 4

# Preferences
PREFERENCE_SAVE_THRESHOLD = 0.5
PREFERENCE_PROMPT_THRESHOLD = 0.6

# Daily goals
WATER_GOAL_OZ = 64

# Macro engine constants (the product never collects age or sex)
DEFAULT_AGE = 30
ACTIVITY_MULTIPLIER = 1.55  # moderate activity, 3-5 workouts a week
FAT_CALORIE_SHARE = 0.28

GOALS = {
    "cut": "Lose fat while maintaining muscle",
    "bulk": "Build muscle and size",
    "maintain": "Maintain current physique"
}

# Goal -> (calorie multiplier, protein grams per lb)
GOAL_ADJUSTMENTS = {
    "cut": (0.8, 1.0),
    "bulk": (1.15, 0.8),
    "maintain": (1.0, 0.8)
}

MEAL_CONTEXTS = {
    "pre-workout": "Pre-workout",
    "post-workout": "Post-workout",
    "before-bed": "Before bed"
}

WEIGHT_UNITS = ["g", "oz", "cup", "serving"]

# Message segmentation
MESSAGE_DELIMITER = "||| "
SEGMENT_MAX_WORDS = 7
SEGMENT_MAX_CHARS = 60
SENTENCE_CHUNK_WORDS = 6
FINAL_CHUNK_WORDS = 5

# Phrases Chad uses once he has enough info to wrap up setup
ONBOARDING_COMPLETE_PHRASES = [
    "let's start tracking",
    "lets start tracking",
    "got what i need",
    "got everything i need",
    "you're all set",
    "youre all set",
    "ready to start tracking"
]
