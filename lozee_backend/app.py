# app.py
# ============================================================================
# Lozee Chat Backend
# ----------------------------------------------------------------------------
# HTTP backend for the Lozee browser client. It relays chat turns to an
# OpenAI chat model and hands the reply back as display text plus an
# optional "analysis" object the model appends as trailing JSON.
#
# The backend provides:
# - Chat relay with reply splitting (/api/gpt-chat)
# - Text-to-speech via Google Cloud TTS (/api/tts)
# - Speech-to-text via OpenAI Whisper (/api/stt)
# - Optional Firebase ID-token verification on every /api route
# - CORS restricted to the client's known origins
# ============================================================================

import base64
import logging
from typing import Any, Dict, List, Optional

from typing_extensions import TypedDict

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.concurrency import run_in_threadpool # Vendor SDK calls are blocking
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from google.cloud import texttospeech
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from .auth import require_user
from .clients import get_chat_model, get_openai_client, get_tts_client
from .config import Settings, configure_logging, get_settings
from .splitter import get_strategy, split

logger = logging.getLogger(__name__)

# ============================================================================
# Client-facing messages
# ============================================================================

FALLBACK_REPLY = "미안하지만, 지금은 답변을 드리기 어렵네."
ERROR_NO_API_KEY = "API 키가 설정되지 않았습니다."
ERROR_INVALID_REQUEST = "유효하지 않은 요청입니다."
ERROR_INTERNAL = "서버 내부 오류"
ERROR_TTS = "TTS 변환 실패"
ERROR_STT = "음성 인식 실패"


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


# ============================================================================
# Chat message translation
# ============================================================================

class ChatMessage(TypedDict):
    """A single turn as sent by the browser client."""
    role: str
    content: str


_ROLE_TO_MESSAGE = {
    "system": SystemMessage,
    "user": HumanMessage,
    "assistant": AIMessage,
}


def to_langchain_messages(messages: List[ChatMessage]) -> List[BaseMessage]:
    """Convert client chat turns into LangChain message objects."""
    if not messages:
        raise ValueError("messages must not be empty")

    converted = []
    for msg in messages:
        if not isinstance(msg, dict):
            raise ValueError("each message must be an object")
        message_cls = _ROLE_TO_MESSAGE.get(msg.get("role"))
        content = msg.get("content")
        if message_cls is None or not isinstance(content, str):
            raise ValueError(f"unsupported message: role={msg.get('role')!r}")
        converted.append(message_cls(content=content))
    return converted


def reply_text(response: Any) -> str:
    """Plain text of a chat model reply, or '' when there is none."""
    content = getattr(response, "content", None)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        # Content blocks: keep only the text parts
        return "".join(
            block if isinstance(block, str) else block.get("text", "")
            for block in content
            if isinstance(block, (str, dict))
        )
    return ""


async def read_json(req: Request) -> Optional[Dict[str, Any]]:
    try:
        data = await req.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


# ============================================================================
# Endpoints
# ============================================================================

router = APIRouter()


@router.get("/health")
async def health(settings: Settings = Depends(get_settings)):

    """Liveness probe; reports which integrations are configured."""

    return {
        "status": "ok",
        "openai": bool(settings.openai_api_key),
        "auth_required": settings.firebase_auth_required,
    }

# ============================================================================

@router.post("/api/gpt-chat")
async def gpt_chat(
    req: Request,
    user: Optional[Dict[str, Any]] = Depends(require_user),
    settings: Settings = Depends(get_settings),
    chat_model=Depends(get_chat_model),
):

    """
    Core conversational endpoint.
    Sends the client's message list to the chat model and returns the
    reply split into display text and analysis.
    """

    if chat_model is None:
        return error_response(ERROR_NO_API_KEY, 500)

    data = await read_json(req)
    if data is None or not isinstance(data.get("messages"), list):
        return error_response(ERROR_INVALID_REQUEST, 400)

    try:
        messages = to_langchain_messages(data["messages"])
    except ValueError as e:
        logger.info("Rejected chat request: %s", e)
        return error_response(ERROR_INVALID_REQUEST, 400)

    try:
        response = await chat_model.ainvoke(messages)
    except Exception:
        logger.exception("Chat model call failed (user=%s)", data.get("userId"))
        return error_response(ERROR_INTERNAL, 500)

    raw = reply_text(response)
    if not raw.strip():
        raw = FALLBACK_REPLY

    result = split(raw, get_strategy(settings.analysis_split_strategy))
    return result.to_payload(settings.analysis_field)

# ============================================================================

@router.post("/api/tts")
async def tts(
    req: Request,
    user: Optional[Dict[str, Any]] = Depends(require_user),
    settings: Settings = Depends(get_settings),
    tts_client=Depends(get_tts_client),
):

    """Synthesizes display text into base64-encoded MP3 audio."""

    data = await read_json(req)
    text = data.get("text") if data else None
    if not isinstance(text, str) or not text.strip():
        return error_response(ERROR_INVALID_REQUEST, 400)

    voice_name = data.get("voice") or settings.tts_voice_name
    speaking_rate = data.get("speakingRate", settings.tts_speaking_rate)
    if (
        not isinstance(voice_name, str)
        or isinstance(speaking_rate, bool)
        or not isinstance(speaking_rate, (int, float))
    ):
        return error_response(ERROR_INVALID_REQUEST, 400)

    synthesis_request = {
        "input": texttospeech.SynthesisInput(text=text),
        "voice": texttospeech.VoiceSelectionParams(
            language_code=settings.tts_language_code,
            name=voice_name,
        ),
        "audio_config": texttospeech.AudioConfig(
            audio_encoding=texttospeech.AudioEncoding.MP3,
            speaking_rate=float(speaking_rate),
        ),
    }

    try:
        response = await run_in_threadpool(tts_client.synthesize_speech, request=synthesis_request)
    except Exception:
        logger.exception("Text-to-speech failed")
        return error_response(ERROR_TTS, 500)

    return {"audioContent": base64.b64encode(response.audio_content).decode("utf-8")}

# ============================================================================

@router.post("/api/stt")
async def stt(
    req: Request,
    user: Optional[Dict[str, Any]] = Depends(require_user),
    settings: Settings = Depends(get_settings),
    openai_client=Depends(get_openai_client),
):

    """
    Converts uploaded audio into text using Whisper.
    """

    if openai_client is None:
        return error_response(ERROR_NO_API_KEY, 500)

    form = await req.form()
    uploaded_file = form.get("file")

    if uploaded_file is None or isinstance(uploaded_file, str):
        return {"text": ""}

    file_bytes = await uploaded_file.read()
    if len(file_bytes) > settings.max_audio_bytes:
        return error_response("File too large", 413)

    try:
        transcription = await run_in_threadpool(
            openai_client.audio.transcriptions.create,
            file=(uploaded_file.filename or "audio.webm", file_bytes),
            model=settings.stt_model,
        )
    except Exception:
        logger.exception("Speech-to-text failed")
        return error_response(ERROR_STT, 500)

    return {"text": transcription.text}


# ============================================================================
# FastAPI App Initialization
# ============================================================================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application. Passing ``settings`` pins them for every
    request instead of reading the environment.
    """
    pinned = settings is not None
    if settings is None:
        settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Lozee Backend")
    if pinned:
        app.dependency_overrides[get_settings] = lambda: settings

    allowed = set(settings.origins)

    @app.middleware("http")
    async def log_rejected_origin(request: Request, call_next):
        origin = request.headers.get("origin")
        if origin and origin not in allowed:
            logger.warning("CORS rejected origin: %s", origin)
        return await call_next(request)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    return app


app = create_app()


def main():
    import uvicorn

    settings = get_settings()
    logger.info("Server listening on port %s", settings.port)
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
