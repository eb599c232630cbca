"""TwiML builders for the voice webhooks"""

from typing import Optional

from twilio.twiml.voice_response import VoiceResponse

from ...config import APP_URL, GATHER_TIMEOUT_SECONDS, IVR_AUDIO_DIR
from ...services.ivr_audio import SHARED_IVR_MESSAGES, shared_audio_url

VOICE = "alice"


def absolute_url(url: str) -> str:
    """Twilio fetches media itself, so relative upload paths need our public host"""
    if url.startswith("http://") or url.startswith("https://"):
        return url
    return f"{APP_URL}{url}"


def _speak(node, key: str, audio_dir: str = IVR_AUDIO_DIR) -> None:
    """Play the pre-generated prompt when it exists, otherwise speak it"""
    audio_url = shared_audio_url(key, audio_dir)
    if audio_url:
        node.play(absolute_url(audio_url))
    else:
        node.say(SHARED_IVR_MESSAGES[key], voice=VOICE)


def build_menu_response(
    gather_url: str,
    menu_text: str,
    audio_url: Optional[str] = None,
    timeout: int = GATHER_TIMEOUT_SECONDS,
    audio_dir: str = IVR_AUDIO_DIR,
) -> str:
    """
    Two-option menu collecting a single digit.

    Twilio only posts to ``gather_url`` when a digit was pressed; on timeout it
    falls through to the no-input prompt and hangs up.
    """
    response = VoiceResponse()
    gather = response.gather(num_digits=1, action=gather_url, method="POST", timeout=timeout)
    if audio_url:
        gather.play(absolute_url(audio_url))
    else:
        gather.say(menu_text, voice=VOICE)

    _speak(response, "noinput", audio_dir)
    response.hangup()
    return str(response)


def build_dial_response(forwarding_number: str, action_url: str, timeout: int) -> str:
    """Ring the owner first; Twilio posts the dial outcome to ``action_url``"""
    response = VoiceResponse()
    dial = response.dial(timeout=timeout, action=action_url, method="POST")
    dial.number(forwarding_number)
    return str(response)


def build_message_response(key: str, audio_dir: str = IVR_AUDIO_DIR) -> str:
    """One shared prompt, then hang up"""
    response = VoiceResponse()
    _speak(response, key, audio_dir)
    response.hangup()
    return str(response)


def build_error_response(audio_dir: str = IVR_AUDIO_DIR) -> str:
    return build_message_response("error", audio_dir)


def build_hangup_response() -> str:
    response = VoiceResponse()
    response.hangup()
    return str(response)
