"""
Pytest configuration and fixtures
"""
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from langchain_core.messages import AIMessage

from lozee_backend.app import create_app
from lozee_backend.auth import get_token_verifier
from lozee_backend.clients import get_chat_model, get_openai_client, get_tts_client
from lozee_backend.config import Settings


class FakeChatModel:
    """Stands in for ChatOpenAI; records every call."""

    def __init__(self, reply="", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        if self.error:
            raise self.error
        return AIMessage(content=self.reply)


class FakeTTSClient:
    def __init__(self, audio=b"ID3fake-mp3", error=None):
        self.audio = audio
        self.error = error
        self.requests = []

    def synthesize_speech(self, request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return SimpleNamespace(audio_content=self.audio)


class FakeTranscriptions:
    def __init__(self, text, error):
        self.text = text
        self.error = error
        self.calls = []

    def create(self, file, model):
        self.calls.append({"file": file, "model": model})
        if self.error:
            raise self.error
        return SimpleNamespace(text=self.text)


class FakeOpenAIClient:
    def __init__(self, text="안녕하세요", error=None):
        self.audio = SimpleNamespace(transcriptions=FakeTranscriptions(text, error))


@pytest.fixture
def settings():
    return Settings(openai_api_key="test-key")


@pytest.fixture
def chat_model():
    return FakeChatModel(reply="안녕하세요! 오늘도 좋은 하루네요.")


@pytest.fixture
def tts_client():
    return FakeTTSClient()


@pytest.fixture
def openai_client():
    return FakeOpenAIClient()


@pytest.fixture
def make_client(chat_model, tts_client, openai_client):
    """Build a TestClient for the given settings with fake vendor clients."""

    def _make(settings, verifier=None, fake_chat=True):
        app = create_app(settings)
        if fake_chat:
            app.dependency_overrides[get_chat_model] = lambda: chat_model
        app.dependency_overrides[get_tts_client] = lambda: tts_client
        app.dependency_overrides[get_openai_client] = lambda: openai_client
        if verifier is not None:
            app.dependency_overrides[get_token_verifier] = lambda: verifier
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client, settings):
    return make_client(settings)
