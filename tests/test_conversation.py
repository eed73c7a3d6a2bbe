"""Tests for the chat turn orchestrator."""

import asyncio
import json

import pytest

from chad.database.queries import day_of
from chad.exceptions import ChatTurnError, CompletionServiceError, ValidationError
from chad.services.conversation import ConversationOrchestrator, TurnState
from chad.services.preference_learner import PreferenceLearner
from conftest import FakeOpenAIService

MEAL_REPLY = ("Got it||| Logged the eggs||| Estimated: 450 cal | 30g protein | 40g carbs | 10g fat"
              "||| You're at 450 today")


def make_orchestrator(db, openai):
    return ConversationOrchestrator(db, openai, PreferenceLearner(db, openai))


class GatedOpenAIService(FakeOpenAIService):
    """JSON-mode calls wait until the test opens the gate."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.gate = asyncio.Event()

    async def complete(self, system_prompt, messages, temperature, max_tokens, json_mode=False):
        if json_mode:
            await self.gate.wait()
        return await super().complete(system_prompt, messages, temperature, max_tokens, json_mode)


class TestChatTurn:

    @pytest.mark.asyncio
    async def test_meal_turn_logs_meal_and_bubbles(self, db, fake_supabase, profile_row):
        await db.create_user_profile(profile_row)
        openai = FakeOpenAIService(chat_replies=[MEAL_REPLY])
        chad = make_orchestrator(db, openai)

        result = await chad.handle_message(1, "3 eggs and toast")
        await chad.wait_for_background_tasks()

        assert result.texts[:2] == ["Got it", "Logged the eggs"]
        assert result.texts[-1] == "You're at 450 today"
        assert all(len(text.split()) <= 7 for text in result.texts)

        messages = fake_supabase.tables["messages"]
        assert [m["role"] for m in messages] == ["user"] + ["assistant"] * len(result.messages)
        assert messages[0]["content"] == "3 eggs and toast"

        meal = result.meal_log
        assert meal["meal_name"] == "3 eggs and toast"
        assert meal["message_id"] == result.messages[0]["id"]
        assert (meal["calories"], meal["protein_g"], meal["carbs_g"], meal["fats_g"]) == (450, 30, 40, 10)

        stats = await db.get_daily_stats(1, day_of(meal["logged_at"]))
        assert stats["total_calories"] == 450
        assert stats["total_protein_g"] == 30
        assert stats["total_carbs_g"] == 40
        assert stats["total_fats_g"] == 10
        assert stats["meals_logged"] == 1

        assert result.targets.calories == 2005
        assert result.states[0] == TurnState.COLLECTING_CONTEXT
        assert result.states[-1] == TurnState.RESPONDING

    @pytest.mark.asyncio
    async def test_plain_reply_logs_no_meal(self, db, fake_supabase, profile_row):
        await db.create_user_profile(profile_row)
        chad = make_orchestrator(db, FakeOpenAIService(chat_replies=["Yo||| What's up"]))

        result = await chad.handle_message(1, "hey")
        await chad.wait_for_background_tasks()

        assert result.texts == ["Yo", "What's up"]
        assert result.meal_log is None
        assert fake_supabase.tables.get("meal_logs", []) == []

    @pytest.mark.asyncio
    async def test_completion_failure_keeps_only_user_message(self, db, fake_supabase, profile_row):
        await db.create_user_profile(profile_row)
        openai = FakeOpenAIService(chat_replies=[CompletionServiceError("timeout")])
        chad = make_orchestrator(db, openai)

        with pytest.raises(ChatTurnError):
            await chad.handle_message(1, "2 eggs")
        await chad.wait_for_background_tasks()

        messages = fake_supabase.tables["messages"]
        assert [(m["role"], m["content"]) for m in messages] == [("user", "2 eggs")]
        assert fake_supabase.tables.get("meal_logs", []) == []
        assert len(openai.chat_calls) == 1

    @pytest.mark.asyncio
    async def test_blank_completion_is_a_failure(self, db, fake_supabase, profile_row):
        await db.create_user_profile(profile_row)
        chad = make_orchestrator(db, FakeOpenAIService(chat_replies=["|||  ||| "]))

        with pytest.raises(ChatTurnError):
            await chad.handle_message(1, "hello")
        await chad.wait_for_background_tasks()

        assert [m["role"] for m in fake_supabase.tables["messages"]] == ["user"]

    @pytest.mark.asyncio
    async def test_missing_fields(self, db):
        chad = make_orchestrator(db, FakeOpenAIService())
        with pytest.raises(ValidationError):
            await chad.handle_message(1, "   ")
        with pytest.raises(ValidationError):
            await chad.handle_message(None, "hi")

    @pytest.mark.asyncio
    async def test_no_profile(self, db, fake_supabase):
        chad = make_orchestrator(db, FakeOpenAIService())
        with pytest.raises(ValidationError):
            await chad.handle_message(1, "hi")
        assert fake_supabase.tables.get("messages", []) == []

    @pytest.mark.asyncio
    async def test_history_sent_with_turn(self, db, profile_row):
        await db.create_user_profile(profile_row)
        openai = FakeOpenAIService(chat_replies=["First||| reply", "Second||| reply"])
        chad = make_orchestrator(db, openai)

        await chad.handle_message(1, "one")
        await chad.handle_message(1, "two")
        await chad.wait_for_background_tasks()

        sent = openai.chat_calls[1]["messages"]
        assert [m["content"] for m in sent] == ["one", "First", "reply", "two"]
        assert openai.chat_calls[1]["temperature"] == 0.7
        assert openai.chat_calls[1]["max_tokens"] == 300

    @pytest.mark.asyncio
    async def test_activity_digest_in_prompt(self, db, profile_row):
        await db.create_user_profile(profile_row)
        await db.create_meal_log(1, "oatmeal", 300, 10, 50, 6)
        openai = FakeOpenAIService(chat_replies=["Nice||| keep going"])
        chad = make_orchestrator(db, openai)

        await chad.handle_message(1, "how am I doing")
        await chad.wait_for_background_tasks()

        prompt = openai.chat_calls[0]["system_prompt"]
        assert "**MEALS TODAY:**" in prompt
        assert "oatmeal - 300cal" in prompt
        assert "Remaining: 1705cal" in prompt


class TestOnboardingCompletion:

    @pytest.mark.asyncio
    async def test_phrase_flips_flag(self, db, profile_row):
        await db.create_user_profile({**profile_row, "onboarding_complete": False})
        openai = FakeOpenAIService(chat_replies=["Cool||| Got what I need||| Let's start tracking"])
        chad = make_orchestrator(db, openai)

        result = await chad.handle_message(1, "I lift 4x a week")
        await chad.wait_for_background_tasks()

        assert result.onboarding_completed is True
        assert (await db.get_user_profile(1))["onboarding_complete"] is True
        assert "SETUP STATUS" in openai.chat_calls[0]["system_prompt"]

    @pytest.mark.asyncio
    async def test_flag_never_goes_back(self, db, profile_row):
        await db.create_user_profile({**profile_row, "onboarding_complete": False})
        openai = FakeOpenAIService(chat_replies=["You're all set||| go eat", "Hmm||| tell me more"])
        chad = make_orchestrator(db, openai)

        await chad.handle_message(1, "no dairy")
        second = await chad.handle_message(1, "what now")
        await chad.wait_for_background_tasks()

        assert second.onboarding_completed is False
        assert (await db.get_user_profile(1))["onboarding_complete"] is True
        assert "SETUP STATUS" not in openai.chat_calls[1]["system_prompt"]

    @pytest.mark.asyncio
    async def test_question_does_not_flip(self, db, profile_row):
        await db.create_user_profile({**profile_row, "onboarding_complete": False})
        chad = make_orchestrator(db, FakeOpenAIService(chat_replies=["Hey Sam||| How often you train?"]))

        result = await chad.handle_message(1, "hi")
        await chad.wait_for_background_tasks()

        assert result.onboarding_completed is False
        assert (await db.get_user_profile(1))["onboarding_complete"] is False


class TestDetachedPreferenceLearning:

    @pytest.mark.asyncio
    async def test_preference_saved_in_background(self, db, fake_supabase, profile_row):
        await db.create_user_profile(profile_row)
        reply = json.dumps({"preferences": [{
            "type": "explicit", "key": "emojis", "value": "No emojis",
            "confidence": 1.0, "source": "asked directly",
        }]})
        openai = FakeOpenAIService(chat_replies=["Got it||| no emojis"], json_replies=[reply])
        chad = make_orchestrator(db, openai)

        await chad.handle_message(1, "don't use emojis")
        await chad.wait_for_background_tasks()

        rows = fake_supabase.tables["user_preferences"]
        assert [(r["preference_key"], r["preference_value"]) for r in rows] == [("emojis", "No emojis")]

        # learned preferences reach the next prompt
        await chad.handle_message(1, "cool")
        await chad.wait_for_background_tasks()
        assert "- No emojis" in openai.chat_calls[1]["system_prompt"]

    @pytest.mark.asyncio
    async def test_preference_failure_does_not_break_turn(self, db, profile_row):
        await db.create_user_profile(profile_row)
        openai = FakeOpenAIService(
            chat_replies=["All good||| logged nothing"],
            json_replies=[CompletionServiceError("rate limited")],
        )
        chad = make_orchestrator(db, openai)

        result = await chad.handle_message(1, "hello")
        await chad.wait_for_background_tasks()

        assert result.texts == ["All good", "logged nothing"]
        assert await db.get_preferences(1) == []



    @pytest.mark.asyncio
    async def test_reply_does_not_wait_for_preference_detection(self, db, fake_supabase, profile_row):
        await db.create_user_profile(profile_row)
        reply = json.dumps({"preferences": [{
            "type": "lifestyle", "key": "diet", "value": "Vegetarian",
            "confidence": 0.9, "source": "said so",
        }]})
        openai = GatedOpenAIService(chat_replies=["Noted||| veggie it is"], json_replies=[reply])
        chad = make_orchestrator(db, openai)

        result = await asyncio.wait_for(chad.handle_message(1, "I'm vegetarian"), timeout=2)

        assert result.texts == ["Noted", "veggie it is"]
        assert fake_supabase.tables.get("user_preferences", []) == []
        assert not all(task.done() for task in chad._background_tasks)

        openai.gate.set()
        await chad.wait_for_background_tasks()

        rows = fake_supabase.tables["user_preferences"]
        assert [(r["preference_key"], r["preference_value"]) for r in rows] == [("diet", "Vegetarian")]
