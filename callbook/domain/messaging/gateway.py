"""Twilio Messages API client"""

import logging
from typing import Optional

import httpx

from ...config import TWILIO_API_BASE
from ...services.twilio_credentials import GatewayCredentials

logger = logging.getLogger(__name__)


class SmsGatewayError(Exception):
    """Submission rejected by the gateway or the gateway was unreachable"""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}" if self.code else self.message


class TwilioSmsGateway:
    def __init__(self, api_base: str = TWILIO_API_BASE, timeout: float = 10.0):
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout

    async def send_message(
        self,
        credentials: GatewayCredentials,
        to: str,
        from_: str,
        body: str,
        status_callback: Optional[str] = None,
    ) -> str:
        """Submit a message; returns the gateway message SID"""
        data = {"To": to, "From": from_, "Body": body}
        if status_callback:
            data["StatusCallback"] = status_callback

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    f"{self.api_base}/Accounts/{credentials.account_sid}/Messages.json",
                    auth=(credentials.account_sid, credentials.auth_token),
                    data=data,
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            raise SmsGatewayError(f"Twilio API unreachable: {e}") from e

        logger.debug(f"Twilio API response status: {response.status_code}")

        if response.status_code in (200, 201):
            return response.json().get("sid")

        try:
            error_data = response.json()
        except ValueError:
            error_data = {}
        code = error_data.get("code")
        raise SmsGatewayError(
            error_data.get("message", f"HTTP {response.status_code}"),
            code=str(code) if code is not None else None,
        )
