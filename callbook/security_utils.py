"""
Security utilities
Credential encryption, API key hashing, one-time codes and log masking
"""

import base64
import hashlib
import logging
import secrets
import string
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from .config import SECRET_KEY

logger = logging.getLogger(__name__)


def _build_cipher(secret: str) -> Fernet:
    # Fernet needs 32 url-safe base64 bytes; derive them from SECRET_KEY
    key = base64.urlsafe_b64encode(hashlib.sha256(secret.encode()).digest())
    return Fernet(key)


cipher_suite = _build_cipher(SECRET_KEY)


def encrypt_credential(credential: str) -> str:
    """Encrypt a credential for storage"""
    return cipher_suite.encrypt(credential.encode()).decode()


def decrypt_credential(encrypted_credential: Optional[str]) -> Optional[str]:
    """Decrypt a stored credential; None when absent or unreadable"""
    if not encrypted_credential:
        return None
    try:
        return cipher_suite.decrypt(encrypted_credential.encode()).decode()
    except InvalidToken:
        logger.error("Failed to decrypt stored credential (SECRET_KEY rotated?)")
        return None


def hash_api_key(api_key: str) -> str:
    return hashlib.sha256(api_key.encode()).hexdigest()


def constant_time_compare(a: Optional[str], b: Optional[str]) -> bool:
    """Compare two strings in constant time to prevent timing attacks"""
    if not a or not b:
        return False
    return secrets.compare_digest(a.encode(), b.encode())


def generate_otp(length: int = 6) -> str:
    """Generate a cryptographically secure random numeric code"""
    return "".join(secrets.choice(string.digits) for _ in range(length))


def generate_reference_number(prefix: str = "CMP") -> str:
    """Short human-friendly reference, e.g. CMP-7K2Q9XHD"""
    alphabet = string.ascii_uppercase + string.digits
    return f"{prefix}-" + "".join(secrets.choice(alphabet) for _ in range(8))


def mask_sensitive_data(data: Optional[str], visible_chars: int = 4) -> str:
    """
    Mask sensitive data for logging

    Args:
        data: Sensitive data to mask (phone numbers, codes)
        visible_chars: Number of characters to show at the end
    """
    if not data:
        return ""
    if len(data) <= visible_chars:
        return "*" * len(data)

    return "*" * (len(data) - visible_chars) + data[-visible_chars:]
