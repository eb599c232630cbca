"""Tenant router - public shop profile, staff IVR settings, admin platform settings"""

import logging
from typing import Callable

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...auth import get_current_tenant, require_admin
from ...database import get_db
from ...dependencies import get_audio_runner, get_credential_store, get_session_factory
from ...models import Tenant
from ...services.ivr_audio import AudioJobRunner
from ...services.twilio_credentials import TwilioCredentialStore
from ...shared.clock import Clock, get_clock
from .schemas import IvrSettingsUpdate, PlatformSettingsUpdate, build_ivr_settings_response
from .service import TenantService, build_platform_settings_response

logger = logging.getLogger(__name__)

public_router = APIRouter(prefix="/public/shop", tags=["Public Shop"])
ivr_router = APIRouter(prefix="/tenant/ivr", tags=["IVR Settings"])
admin_router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


def get_tenant_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> TenantService:
    return TenantService(db, clock)


@public_router.get("/{slug}")
async def get_shop(slug: str, service: TenantService = Depends(get_tenant_service)):
    """Services, business hours and verified reviews for an active business"""
    return {"success": True, "data": service.shop_profile(slug)}


# ============================================================================
# IVR SETTINGS (staff)
# ============================================================================


@ivr_router.get("")
async def get_ivr_settings(tenant: Tenant = Depends(get_current_tenant)):
    return {"success": True, "data": build_ivr_settings_response(tenant)}


@ivr_router.put("")
async def update_ivr_settings(
    data: IvrSettingsUpdate,
    tenant: Tenant = Depends(get_current_tenant),
    service: TenantService = Depends(get_tenant_service),
    runner: AudioJobRunner = Depends(get_audio_runner),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    """Save IVR texts; a changed menu queues audio regeneration"""
    menu_changed = service.update_ivr_settings(tenant, data)
    if menu_changed:
        service.schedule_audio_regeneration(tenant.id, runner, session_factory)
    return {"success": True, "data": build_ivr_settings_response(tenant, queued=menu_changed)}


@ivr_router.post("/regenerate")
async def regenerate_ivr_audio(
    tenant: Tenant = Depends(get_current_tenant),
    service: TenantService = Depends(get_tenant_service),
    runner: AudioJobRunner = Depends(get_audio_runner),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    """Queue synthesis of the current greeting; answers before the audio exists"""
    service.schedule_audio_regeneration(tenant.id, runner, session_factory)
    return JSONResponse(
        status_code=202,
        content={
            "success": True,
            "data": jsonable_encoder(build_ivr_settings_response(tenant, queued=True)),
        },
    )


# ============================================================================
# PLATFORM SETTINGS (admin)
# ============================================================================


@admin_router.get("/settings")
async def get_platform_settings(service: TenantService = Depends(get_tenant_service)):
    settings = service.get_platform_settings()
    return {"success": True, "data": build_platform_settings_response(settings)}


@admin_router.patch("/settings")
async def update_platform_settings(
    data: PlatformSettingsUpdate,
    service: TenantService = Depends(get_tenant_service),
    credential_store: TwilioCredentialStore = Depends(get_credential_store),
):
    settings = service.update_platform_settings(data, credential_store)
    return {"success": True, "data": build_platform_settings_response(settings)}
