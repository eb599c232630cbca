"""
Dependency providers for shared collaborators

The credential store, SMS gateway, audio runner and session factory are created
once per application and kept on ``app.state``; tests swap them out there or via
``app.dependency_overrides``.
"""

from typing import Callable

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .database import get_db
from .domain.messaging.dispatcher import MessageDispatcher
from .domain.messaging.gateway import TwilioSmsGateway
from .services.ivr_audio import AudioJobRunner
from .services.twilio_credentials import TwilioCredentialStore


def get_credential_store(request: Request) -> TwilioCredentialStore:
    return request.app.state.credential_store


def get_sms_gateway(request: Request) -> TwilioSmsGateway:
    return request.app.state.sms_gateway


def get_audio_runner(request: Request) -> AudioJobRunner:
    return request.app.state.audio_runner


def get_session_factory(request: Request) -> Callable[[], Session]:
    """Session factory for background jobs that outlive the request session"""
    return request.app.state.session_factory


def get_dispatcher(
    db: Session = Depends(get_db),
    gateway: TwilioSmsGateway = Depends(get_sms_gateway),
    credential_store: TwilioCredentialStore = Depends(get_credential_store),
) -> MessageDispatcher:
    return MessageDispatcher(db, gateway, credential_store)
