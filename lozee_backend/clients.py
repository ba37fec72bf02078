# ============================================================================
# Vendor Clients
# ----------------------------------------------------------------------------
# SDK handles are built lazily on first use and reused for the life of the
# process. Each one is exposed as a FastAPI dependency so the application
# never touches a global directly and tests can swap in fakes through
# app.dependency_overrides.
# ============================================================================

import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends

import firebase_admin # Firebase Admin SDK, used only for ID-token verification
from firebase_admin import credentials
from google.cloud import texttospeech # Google Cloud Text-to-Speech
from langchain_openai import ChatOpenAI # LangChain chat model wrapper around OpenAI chat completions
from openai import OpenAI # Direct OpenAI client for Whisper transcription

from .config import Settings, get_settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=4)
def _chat_model(api_key: str, model: str, temperature: float) -> ChatOpenAI:
    return ChatOpenAI(
        model=model,
        temperature=temperature,
        api_key=api_key,
        max_retries=2,
    )


def get_chat_model(settings: Settings = Depends(get_settings)) -> Optional[ChatOpenAI]:
    """Primary conversational LLM, or None when no API key is configured."""
    if not settings.openai_api_key:
        return None
    return _chat_model(settings.openai_api_key, settings.chat_model, settings.chat_temperature)


@lru_cache(maxsize=4)
def _openai_client(api_key: str) -> OpenAI:
    return OpenAI(api_key=api_key)


def get_openai_client(settings: Settings = Depends(get_settings)) -> Optional[OpenAI]:
    """Client for speech-to-text, or None when no API key is configured."""
    if not settings.openai_api_key:
        return None
    return _openai_client(settings.openai_api_key)


@lru_cache(maxsize=1)
def get_tts_client() -> texttospeech.TextToSpeechClient:
    # Uses Application Default Credentials
    return texttospeech.TextToSpeechClient()


def get_firebase_app(settings: Settings = Depends(get_settings)) -> firebase_admin.App:
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    if settings.firebase_credentials:
        cred = credentials.Certificate(settings.firebase_credentials)
        app = firebase_admin.initialize_app(cred)
        logger.info("Firebase initialized from service account file")
    else:
        app = firebase_admin.initialize_app()
        logger.info("Firebase initialized with application default credentials")
    return app
