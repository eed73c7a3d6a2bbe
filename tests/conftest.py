"""Pytest configuration and fixtures."""

import copy
import itertools
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest

from chad.database.queries import DatabaseQueries


class FakeQuery:
    """Just enough of the Supabase query builder for DatabaseQueries."""

    def __init__(self, store, table):
        self.store = store
        self.table = table
        self.op = "select"
        self.payload = None
        self.filters = []
        self.order_by = None
        self.row_limit = None

    def select(self, *columns):
        self.op = "select"
        return self

    def insert(self, data):
        self.op, self.payload = "insert", data
        return self

    def update(self, data):
        self.op, self.payload = "update", data
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def gte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) >= value)
        return self

    def lte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) <= value)
        return self

    def lt(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) < value)
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, count):
        self.row_limit = count
        return self

    def _matching(self):
        rows = self.store.rows(self.table)
        return [row for row in rows if all(f(row) for f in self.filters)]

    def execute(self):
        rows = self.store.rows(self.table)

        if self.op == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for item in items:
                row = copy.deepcopy(item)
                row.setdefault("id", next(self.store.ids[self.table]))
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            return SimpleNamespace(data=inserted)

        matching = self._matching()

        if self.op == "update":
            for row in matching:
                row.update(copy.deepcopy(self.payload))
            return SimpleNamespace(data=copy.deepcopy(matching))

        if self.op == "delete":
            for row in matching:
                rows.remove(row)
            return SimpleNamespace(data=copy.deepcopy(matching))

        if self.order_by:
            column, desc = self.order_by
            matching = sorted(matching, key=lambda row: row.get(column), reverse=desc)
        if self.row_limit is not None:
            matching = matching[:self.row_limit]
        return SimpleNamespace(data=copy.deepcopy(matching))


class FakeSupabase:
    """In-memory tables keyed by name."""

    def __init__(self):
        self.tables = {}
        self.ids = {}

    def rows(self, table):
        if table not in self.tables:
            self.tables[table] = []
            self.ids[table] = itertools.count(1)
        return self.tables[table]

    def table(self, name):
        self.rows(name)
        return FakeQuery(self, name)


class FakeOpenAIService:
    """Scripted completion service.

    Chat turns and JSON-mode calls draw from separate queues, so the
    detached preference call can run in any order relative to the reply.
    """

    def __init__(self, chat_replies=None, json_replies=None):
        self.chat_replies = list(chat_replies or [])
        self.json_replies = list(json_replies or [])
        self.calls = []

    async def complete(self, system_prompt, messages, temperature, max_tokens, json_mode=False):
        self.calls.append({
            "system_prompt": system_prompt,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "json_mode": json_mode,
        })
        queue = self.json_replies if json_mode else self.chat_replies
        reply = queue.pop(0) if queue else ('{"preferences": []}' if json_mode else "ok")
        if isinstance(reply, Exception):
            raise reply
        return reply

    @property
    def chat_calls(self):
        return [call for call in self.calls if not call["json_mode"]]


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def db(fake_supabase):
    return DatabaseQueries(fake_supabase)


@pytest.fixture
def fake_openai():
    return FakeOpenAIService()


@pytest.fixture
def profile_row():
    return {
        "user_id": 1,
        "name": "Sam",
        "height_inches": 70,
        "weight_lbs": 180,
        "goal_type": "cut",
        "target_weight": 170,
        "onboarding_complete": True,
    }


@pytest.fixture
def mock_update():
    """A Telegram text message update."""
    update = Mock()
    update.callback_query = None
    update.message.text = ""
    update.message.reply_text = AsyncMock()
    update.effective_chat.send_action = AsyncMock()
    update.effective_user.id = 1001
    update.effective_user.username = "sam"
    update.effective_user.first_name = "Sam"
    return update


@pytest.fixture
def mock_callback_update():
    """A Telegram inline button update."""
    update = Mock()
    update.callback_query.answer = AsyncMock()
    update.callback_query.edit_message_text = AsyncMock()
    update.effective_user.id = 1001
    update.effective_user.username = "sam"
    update.effective_user.first_name = "Sam"
    return update


@pytest.fixture
def mock_context(db):
    context = Mock()
    context.user_data = {"user_id": 1}
    context.bot_data = {"db": db}
    return context
