# app/services/sms_hook.py

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel

log = logging.getLogger(__name__)


class SmsUser(BaseModel):
    phone: str


class SmsOtp(BaseModel):
    otp: str


class SmsHookPayload(BaseModel):
    """Body Supabase Auth posts to the send-SMS hook."""

    user: SmsUser
    sms: SmsOtp


class SmsSendError(RuntimeError):
    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.details = details


def normalize_phone(phone: str, country_code: str = "91") -> str:
    number = phone.strip()
    if number.startswith("+"):
        number = number[1:]
    if not number.startswith(country_code) and len(number) == 10:
        number = country_code + number
    return number


class Msg91Sender:

    def __init__(
        self,
        *,
        auth_key: str,
        template_id: str,
        api_url: str = "https://control.msg91.com/api/v5/flow",
        country_code: str = "91",
        timeout_seconds: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._auth_key = auth_key
        self._template_id = template_id
        self._api_url = api_url
        self._country_code = country_code
        self._timeout = timeout_seconds
        self._transport = transport

    async def send_otp(self, payload: SmsHookPayload) -> Dict[str, Any]:
        phone = normalize_phone(payload.user.phone, self._country_code)
        body = {
            "template_id": self._template_id,
            "short_url": "1",
            "recipients": [{"mobiles": phone, "VAR1": payload.sms.otp}],
        }
        log.info("Sending OTP SMS to %s", phone)

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            resp = await client.post(
                self._api_url,
                json=body,
                headers={"authkey": self._auth_key, "Content-Type": "application/json"},
            )
        try:
            result = resp.json()
        except ValueError:
            result = {"type": "error", "message": resp.text}
        if not isinstance(result, dict):
            result = {"data": result}

        if resp.status_code >= 400 or result.get("type") == "error":
            log.error("MSG91 error: %s", result)
            raise SmsSendError("Failed to send SMS", details=result)

        log.info("SMS sent, request_id=%s", result.get("request_id"))
        return {
            "success": True,
            "message": "SMS sent via MSG91",
            "request_id": result.get("request_id"),
        }
