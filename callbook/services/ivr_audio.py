"""
IVR audio generation
Synthesizes menu prompts with ElevenLabs and stores them under IVR_AUDIO_DIR.
Generation is fire-and-forget: callers submit a job and never await it.
"""

import asyncio
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import httpx
from sqlalchemy.orm import Session

from ..config import (
    ELEVENLABS_API_BASE,
    ELEVENLABS_DEFAULT_VOICE_ID,
    IVR_AUDIO_DIR,
    IVR_AUDIO_URL_PREFIX,
)
from ..database import SessionLocal
from ..models import PLATFORM_SETTINGS_ID, PlatformSettings, Tenant
from ..security_utils import decrypt_credential

logger = logging.getLogger(__name__)

SHARED_IVR_MESSAGES = {
    "noinput": "We did not receive any input. Goodbye.",
    "thankyou-booking": "Thank you! We have sent you a text message with a link to book an appointment. Goodbye!",
    "thankyou-complaint": "Thank you! We have sent you a text message with a link to reach our team. Goodbye!",
    "invalid": "Sorry, that was not a valid option. Goodbye!",
    "error": "We are sorry, an error occurred. Please try again later.",
}


DEFAULT_GREETING = "Thank you for calling {name}. Sorry we missed your call."
DEFAULT_CALLBACK_MESSAGE = "Press 1 to get a text message with a link to book an appointment."
DEFAULT_COMPLAINT_MESSAGE = "Press 2 to request a callback or leave feedback."


def compose_menu_text(tenant: Tenant, settings: Optional[PlatformSettings] = None) -> str:
    """
    Greeting, then the callback option, then the complaint option.

    Each part is the tenant's own text, else the platform default, else the
    built-in wording. The spoken menu and the recorded greeting both use this.
    """
    greeting = tenant.ivr_greeting or (settings and settings.default_ivr_greeting)
    callback = tenant.ivr_callback_message or (settings and settings.default_ivr_callback)
    complaint = tenant.ivr_complaint_message or (settings and settings.default_ivr_complaint)
    return " ".join(
        [
            greeting or DEFAULT_GREETING.format(name=tenant.name),
            callback or DEFAULT_CALLBACK_MESSAGE,
            complaint or DEFAULT_COMPLAINT_MESSAGE,
        ]
    )


def shared_audio_url(key: str, audio_dir: str = IVR_AUDIO_DIR) -> Optional[str]:
    """URL of a pre-generated shared prompt, or None if it has not been generated"""
    if os.path.exists(os.path.join(audio_dir, f"shared-{key}.mp3")):
        return f"{IVR_AUDIO_URL_PREFIX}/shared-{key}.mp3"
    return None


def load_platform_settings(db: Session) -> Optional[PlatformSettings]:
    return db.query(PlatformSettings).filter(PlatformSettings.id == PLATFORM_SETTINGS_ID).first()


def load_tts_config(db: Session) -> Optional[tuple[str, str]]:
    """(api_key, voice_id) from platform settings, or None when not configured"""
    settings = load_platform_settings(db)
    api_key = decrypt_credential(settings.elevenlabs_api_key) if settings else None
    if not api_key:
        return None
    return api_key, settings.elevenlabs_voice_id or ELEVENLABS_DEFAULT_VOICE_ID


async def synthesize(text: str, api_key: str, voice_id: str) -> Optional[bytes]:
    async with httpx.AsyncClient() as client:
        response = await client.post(
            f"{ELEVENLABS_API_BASE}/text-to-speech/{voice_id}",
            headers={
                "xi-api-key": api_key,
                "Content-Type": "application/json",
                "Accept": "audio/mpeg",
            },
            json={
                "text": text,
                "model_id": "eleven_monolingual_v1",
                "voice_settings": {"stability": 0.5, "similarity_boost": 0.75},
            },
            timeout=30.0,
        )

    if response.status_code != 200:
        logger.error(f"ElevenLabs API error: {response.status_code}")
        return None
    return response.content


def _write_audio(filename: str, audio: bytes, audio_dir: str) -> str:
    os.makedirs(audio_dir, exist_ok=True)
    with open(os.path.join(audio_dir, filename), "wb") as f:
        f.write(audio)
    return f"{IVR_AUDIO_URL_PREFIX}/{filename}"


async def generate_shared_audios(
    session_factory: Callable[[], Session] = SessionLocal, audio_dir: str = IVR_AUDIO_DIR
) -> int:
    """Generate any missing shared prompts; returns how many were written"""
    db = session_factory()
    try:
        config = load_tts_config(db)
    finally:
        db.close()
    if not config:
        logger.warning("ElevenLabs API key not configured, skipping shared IVR audio generation")
        return 0

    api_key, voice_id = config
    written = 0
    for key, text in SHARED_IVR_MESSAGES.items():
        if shared_audio_url(key, audio_dir):
            continue
        logger.info(f"Generating shared IVR audio: {key}")
        audio = await synthesize(text, api_key, voice_id)
        if audio:
            _write_audio(f"shared-{key}.mp3", audio, audio_dir)
            written += 1
    return written


async def generate_tenant_greeting(
    tenant_id: int,
    session_factory: Callable[[], Session] = SessionLocal,
    audio_dir: str = IVR_AUDIO_DIR,
) -> Optional[str]:
    """Synthesize a tenant's menu prompt and store its URL on the tenant"""
    db = session_factory()
    try:
        tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
        if not tenant:
            logger.warning(f"IVR audio requested for unknown tenant {tenant_id}")
            return None
        config = load_tts_config(db)
        if not config:
            logger.warning("ElevenLabs API key not configured, skipping IVR audio generation")
            return None

        api_key, voice_id = config
        # The recording replaces the spoken menu, so it must carry both options
        text = compose_menu_text(tenant, load_platform_settings(db))
        audio = await synthesize(text, api_key, voice_id)
        if not audio:
            return None

        url = _write_audio(f"{tenant.id}-{int(time.time())}.mp3", audio, audio_dir)
        tenant.ivr_audio_url = url
        db.commit()
        logger.info(f"IVR audio generated for tenant {tenant.id}: {url}")
    finally:
        db.close()

    await generate_shared_audios(session_factory, audio_dir)
    return url


@dataclass
class AudioJobResult:
    name: str
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AudioJobRunner:
    """
    Runs audio jobs as background tasks on the current event loop.

    ``submit`` returns immediately; the optional ``on_done`` callback receives an
    ``AudioJobResult``. Job failures are logged as warnings and never reach the
    submitting request.
    """

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def submit(
        self,
        name: str,
        job: Callable[[], Awaitable[Any]],
        on_done: Optional[Callable[[AudioJobResult], None]] = None,
    ) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self._run(name, job, on_done))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info(f"Audio job submitted: {name}")
        return task

    async def _run(self, name, job, on_done) -> AudioJobResult:
        try:
            result = AudioJobResult(name=name, value=await job())
        except Exception as e:
            logger.warning(f"Audio job {name} failed (non-blocking): {e}")
            result = AudioJobResult(name=name, error=e)

        if on_done:
            try:
                on_done(result)
            except Exception as e:
                logger.warning(f"Audio job {name} callback failed: {e}")
        return result

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for in-flight jobs (shutdown and tests)"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
