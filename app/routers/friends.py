# app/routers/friends.py

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from app.common.deps import (
    get_current_identity,
    get_event_bus,
    get_friendship_service,
    get_optional_identity,
    identity_from_token,
)
from app.common.events import EventBus
from app.common.websocket import manager
from app.models.friendship import FriendRequestCreate, FriendRequestWithUser, FriendshipRead
from app.models.session import Identity
from app.models.user import ProfileRead
from app.services.friendship_service import FriendRequestResult, FriendshipService

log = logging.getLogger(__name__)

router = APIRouter()


def _result_body(result: FriendRequestResult) -> dict:
    return {
        "success": result.success,
        "status": result.status,
        "message": result.message,
        "friendship": FriendshipRead.model_validate(result.friendship) if result.friendship else None,
    }


@router.get("", response_model=List[ProfileRead])
def get_friend_list(
    identity: Identity = Depends(get_current_identity),
    service: FriendshipService = Depends(get_friendship_service),
):
    return service.list_friends(identity.id)


@router.get("/requests", response_model=List[FriendRequestWithUser])
def get_friend_requests(
    identity: Optional[Identity] = Depends(get_optional_identity),
    service: FriendshipService = Depends(get_friendship_service),
):
    # anonymous callers just see nothing
    return service.list_pending_requests(identity.id if identity else None)


@router.post("/requests")
async def send_friend_request(
    data: FriendRequestCreate,
    identity: Optional[Identity] = Depends(get_optional_identity),
    service: FriendshipService = Depends(get_friendship_service),
    bus: EventBus = Depends(get_event_bus),
):
    user_id = identity.id if identity else None
    result = await run_in_threadpool(service.send_request, user_id, data.addressee_id)
    await bus.publish_all(result.events)
    return _result_body(result)


@router.post("/requests/{request_id}/accept")
async def accept_friend_request(
    request_id: str,
    identity: Optional[Identity] = Depends(get_optional_identity),
    service: FriendshipService = Depends(get_friendship_service),
    bus: EventBus = Depends(get_event_bus),
):
    user_id = identity.id if identity else None
    result = await run_in_threadpool(service.accept_request, user_id, request_id)
    await bus.publish_all(result.events)
    return _result_body(result)


@router.post("/requests/{request_id}/reject")
async def reject_friend_request(
    request_id: str,
    identity: Optional[Identity] = Depends(get_optional_identity),
    service: FriendshipService = Depends(get_friendship_service),
    bus: EventBus = Depends(get_event_bus),
):
    user_id = identity.id if identity else None
    result = await run_in_threadpool(service.reject_request, user_id, request_id)
    await bus.publish_all(result.events)
    return _result_body(result)


@router.websocket("/realtime")
async def realtime(websocket: WebSocket, token: str = Query("")):
    identity = identity_from_token(token)
    if identity is None:
        await websocket.close(code=4401)
        return

    await websocket.accept()
    await manager.connect(identity.id, websocket)
    log.info("Realtime connected: %s", identity.id)
    try:
        while True:
            # clients only listen; anything they send is ignored
            await websocket.receive_text()
    except WebSocketDisconnect:
        log.info("Realtime disconnected: %s", identity.id)
    finally:
        manager.disconnect(identity.id, websocket)
