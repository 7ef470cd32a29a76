# tests/test_sms_hook.py

import json

import httpx
import pytest

from app.common.deps import get_sms_sender
from app.main import app
from app.services.sms_hook import Msg91Sender, SmsHookPayload, SmsSendError, normalize_phone

HOOK_BODY = {"user": {"phone": "+919876543210"}, "sms": {"otp": "482913"}}


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("+919876543210", "919876543210"),
        ("9876543210", "919876543210"),
        ("919876543210", "919876543210"),
        ("+14155550123", "14155550123"),
    ],
)
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


def sender_with(handler):
    return Msg91Sender(
        auth_key="msg91-key",
        template_id="tmpl-1",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_send_otp_posts_flow_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["authkey"] = request.headers.get("authkey")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"type": "success", "request_id": "req-42"})

    result = await sender_with(handler).send_otp(SmsHookPayload.model_validate(HOOK_BODY))

    assert result == {"success": True, "message": "SMS sent via MSG91", "request_id": "req-42"}
    assert seen["url"] == "https://control.msg91.com/api/v5/flow"
    assert seen["authkey"] == "msg91-key"
    assert seen["body"] == {
        "template_id": "tmpl-1",
        "short_url": "1",
        "recipients": [{"mobiles": "919876543210", "VAR1": "482913"}],
    }


@pytest.mark.asyncio
async def test_provider_error_raises_with_details():
    def handler(request):
        return httpx.Response(200, json={"type": "error", "message": "Invalid template"})

    with pytest.raises(SmsSendError) as excinfo:
        await sender_with(handler).send_otp(SmsHookPayload.model_validate(HOOK_BODY))
    assert excinfo.value.details == {"type": "error", "message": "Invalid template"}


def test_hook_endpoint(client):
    app.dependency_overrides[get_sms_sender] = lambda: sender_with(
        lambda request: httpx.Response(200, json={"type": "success", "request_id": "req-1"})
    )

    response = client.post("/api/hooks/send-sms", json=HOOK_BODY)
    assert response.status_code == 200
    assert response.json()["success"] is True


def test_hook_endpoint_provider_failure(client):
    app.dependency_overrides[get_sms_sender] = lambda: sender_with(
        lambda request: httpx.Response(401, json={"type": "error", "message": "Unauthorized"})
    )

    response = client.post("/api/hooks/send-sms", json=HOOK_BODY)
    assert response.status_code == 500
    assert response.json() == {
        "error": "Failed to send SMS",
        "details": {"type": "error", "message": "Unauthorized"},
    }


def test_hook_endpoint_unconfigured(client):
    response = client.post("/api/hooks/send-sms", json=HOOK_BODY)
    assert response.status_code == 503


def test_hook_endpoint_rejects_malformed_payload(client):
    response = client.post("/api/hooks/send-sms", json={"user": {}})
    assert response.status_code == 422
