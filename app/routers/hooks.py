# app/routers/hooks.py

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.common.deps import get_sms_sender
from app.services.sms_hook import Msg91Sender, SmsHookPayload, SmsSendError

log = logging.getLogger(__name__)

router = APIRouter()


@router.post("/send-sms")
async def send_sms(payload: SmsHookPayload, sender: Optional[Msg91Sender] = Depends(get_sms_sender)):
    if sender is None:
        log.error("SMS hook called but MSG91 is not configured")
        return JSONResponse(status_code=503, content={"error": "SMS provider is not configured"})
    try:
        return await sender.send_otp(payload)
    except SmsSendError as exc:
        return JSONResponse(status_code=500, content={"error": str(exc), "details": exc.details})
    except httpx.HTTPError as exc:
        log.error("SMS hook error: %s", exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error", "message": str(exc)})
