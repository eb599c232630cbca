"""
Authentication dependencies
Staff requests carry their tenant's API key; platform admin requests carry ADMIN_API_KEY
"""

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import ADMIN_API_KEY
from .database import get_db
from .models import Tenant
from .security_utils import constant_time_compare, hash_api_key

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_current_tenant(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Tenant:
    """Resolve the tenant that owns the presented API key"""
    token = credentials.credentials
    tenant = db.query(Tenant).filter(Tenant.api_key_hash == hash_api_key(token)).first()
    if not tenant:
        logger.warning("Rejected staff request with unknown API key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )
    return tenant


def require_admin(credentials: HTTPAuthorizationCredentials = Depends(security)) -> None:
    """Platform-admin guard for /admin endpoints"""
    if not ADMIN_API_KEY:
        logger.error("ADMIN_API_KEY not configured - admin endpoints disabled")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    if not constant_time_compare(credentials.credentials, ADMIN_API_KEY):
        logger.warning("Rejected admin request with invalid key")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
