"""Tests for the voice and Supabase service wrappers."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest
import requests

from chad.services.supabase_service import SupabaseService
from chad.services.voice_service import VoiceService
from conftest import FakeSupabase


def make_voice_service():
    client = Mock()
    client.audio.transcriptions.create = AsyncMock(return_value=SimpleNamespace(text="  two eggs and toast "))
    return VoiceService(SimpleNamespace(client=client)), client


class TestVoiceService:

    @pytest.mark.asyncio
    async def test_transcribe_removes_file(self, tmp_path):
        audio = tmp_path / "note.ogg"
        audio.write_bytes(b"OggS")
        service, client = make_voice_service()

        text = await service.transcribe_voice(str(audio))

        assert text == "two eggs and toast"
        assert not audio.exists()
        assert client.audio.transcriptions.create.call_args.kwargs["language"] == "en"

    @pytest.mark.asyncio
    async def test_transcribe_failure(self, tmp_path):
        audio = tmp_path / "note.ogg"
        audio.write_bytes(b"OggS")
        service, client = make_voice_service()
        client.audio.transcriptions.create.side_effect = RuntimeError("bad audio")

        assert await service.transcribe_voice(str(audio)) is None
        assert not audio.exists()

    @pytest.mark.asyncio
    async def test_download(self, tmp_path, monkeypatch):
        get = Mock(return_value=SimpleNamespace(status_code=200, content=b"OggS"))
        monkeypatch.setattr(requests, "get", get)
        service, _ = make_voice_service()
        target = tmp_path / "voice" / "note.ogg"

        assert await service.download_voice_file("voice/file_1.oga", str(target), "TOKEN")

        assert target.read_bytes() == b"OggS"
        assert get.call_args.args[0] == "https://api.telegram.org/file/botTOKEN/voice/file_1.oga"
        assert get.call_args.kwargs["timeout"] == 30

    @pytest.mark.asyncio
    async def test_download_http_error(self, tmp_path, monkeypatch):
        monkeypatch.setattr(requests, "get", Mock(return_value=SimpleNamespace(status_code=404, content=b"")))
        service, _ = make_voice_service()

        assert not await service.download_voice_file("voice/x.oga", str(tmp_path / "x.ogg"), "TOKEN")

    @pytest.mark.asyncio
    async def test_download_network_error(self, tmp_path, monkeypatch):
        monkeypatch.setattr(requests, "get", Mock(side_effect=requests.ConnectionError("offline")))
        service, _ = make_voice_service()

        assert not await service.download_voice_file("voice/x.oga", str(tmp_path / "x.ogg"), "TOKEN")


class TestSupabaseService:

    def test_secret_from_app_settings(self):
        store = FakeSupabase()
        store.table("app_settings").insert({"key": "OPENAI_API_KEY", "value": "sk-test"}).execute()
        service = SupabaseService("http://localhost", "key", client=store)

        assert service.get_secret("OPENAI_API_KEY") == "sk-test"
        assert service.get_secret("TELEGRAM_BOT_TOKEN") is None
        assert service.get_client() is store

    def test_secret_lookup_failure(self):
        client = Mock()
        client.table.side_effect = RuntimeError("connection refused")
        service = SupabaseService("http://localhost", "key", client=client)

        assert service.get_secret("OPENAI_API_KEY") is None
