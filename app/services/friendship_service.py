# app/services/friendship_service.py

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from app.common.errors import NotFound, PersistenceFailure, Unauthorized, ValidationFailed
from app.common.events import (
    FRIENDSHIP_ACCEPTED,
    FRIENDSHIP_REJECTED,
    FRIENDSHIP_REQUESTED,
    FriendshipEvent,
)
from app.models.base import utcnow
from app.models.friendship import ACCEPTED, PENDING, REJECTED, Friendship, make_pair_key
from app.models.user import UserProfile

log = logging.getLogger(__name__)

# views made stale by each transition
ACCEPT_PATHS = ("/feed", "/profile", "/friends")
REJECT_PATHS = ("/feed", "/profile")
REQUEST_PATHS = ("/profile",)

# soft outcomes of send_request
SENT = "sent"
CONNECTED = "connected"
ALREADY_CONNECTED = "already_connected"
ALREADY_SENT = "already_sent"
UNAVAILABLE = "unavailable"


@dataclass
class FriendRequestResult:
    success: bool
    status: str
    message: str
    friendship: Optional[Friendship] = None
    events: Tuple[FriendshipEvent, ...] = field(default_factory=tuple)


class FriendshipService:
    """
    pending -> accepted | rejected, one row per unordered pair.

    There is no locking: concurrent accept/reject of the same row resolve to
    whichever update commits last and both callers see success.
    """

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    def get_between(self, user_a: str, user_b: str) -> Optional[Friendship]:
        return (
            self.db.query(Friendship)
            .filter(Friendship.pair_key == make_pair_key(user_a, user_b))
            .first()
        )

    def list_pending_requests(self, caller_id: Optional[str]) -> List[Friendship]:
        if not caller_id:
            return []
        return (
            self.db.query(Friendship)
            .options(joinedload(Friendship.requester))
            .filter(Friendship.addressee_id == caller_id, Friendship.status == PENDING)
            .order_by(Friendship.created_at.desc())
            .all()
        )

    def list_friends(self, caller_id: str) -> List[UserProfile]:
        rows = (
            self.db.query(Friendship)
            .filter(
                or_(Friendship.requester_id == caller_id, Friendship.addressee_id == caller_id),
                Friendship.status == ACCEPTED,
            )
            .all()
        )
        other_ids = [row.other_party(caller_id) for row in rows]
        if not other_ids:
            return []
        return self.db.query(UserProfile).filter(UserProfile.id.in_(other_ids)).all()

    # ------------------------------------------------------------------
    # transitions
    # ------------------------------------------------------------------
    def send_request(self, caller_id: Optional[str], addressee_id: str) -> FriendRequestResult:
        if not caller_id:
            raise Unauthorized("Not authenticated")
        if addressee_id == caller_id:
            raise ValidationFailed("Cannot send a friend request to yourself")
        if self.db.get(UserProfile, addressee_id) is None:
            raise NotFound("User not found")

        existing = self.get_between(caller_id, addressee_id)
        if existing:
            if existing.status == ACCEPTED:
                return FriendRequestResult(True, ALREADY_CONNECTED, "Already connected", existing)
            if existing.status == PENDING:
                if existing.requester_id == addressee_id:
                    # they asked first: sending back counts as accepting
                    self._set_status(existing, ACCEPTED)
                    event = self._event(FRIENDSHIP_ACCEPTED, existing, ACCEPT_PATHS)
                    return FriendRequestResult(True, CONNECTED, "Connected!", existing, (event,))
                return FriendRequestResult(False, ALREADY_SENT, "Request already sent", existing)
            # rejected pairs stay closed
            return FriendRequestResult(False, UNAVAILABLE, "Friend request unavailable", existing)

        friendship = Friendship(
            requester_id=caller_id,
            addressee_id=addressee_id,
            pair_key=make_pair_key(caller_id, addressee_id),
            status=PENDING,
        )
        self.db.add(friendship)
        self._commit("Failed to send friend request")
        self.db.refresh(friendship)
        log.info("Friend request %s: %s -> %s", friendship.id, caller_id, addressee_id)

        event = self._event(FRIENDSHIP_REQUESTED, friendship, REQUEST_PATHS)
        return FriendRequestResult(True, SENT, "Request sent!", friendship, (event,))

    def accept_request(self, caller_id: Optional[str], request_id: str) -> FriendRequestResult:
        friendship = self._pending_for_addressee(caller_id, request_id)
        self._set_status(friendship, ACCEPTED)
        event = self._event(FRIENDSHIP_ACCEPTED, friendship, ACCEPT_PATHS)
        return FriendRequestResult(True, ACCEPTED, "Friend request accepted", friendship, (event,))

    def reject_request(self, caller_id: Optional[str], request_id: str) -> FriendRequestResult:
        friendship = self._pending_for_addressee(caller_id, request_id)
        self._set_status(friendship, REJECTED)
        event = self._event(FRIENDSHIP_REJECTED, friendship, REJECT_PATHS)
        return FriendRequestResult(True, REJECTED, "Friend request rejected", friendship, (event,))

    # ------------------------------------------------------------------
    def _pending_for_addressee(self, caller_id: Optional[str], request_id: str) -> Friendship:
        if not caller_id:
            raise Unauthorized("Not authenticated")
        friendship = (
            self.db.query(Friendship)
            .filter(
                Friendship.id == request_id,
                Friendship.addressee_id == caller_id,
                Friendship.status == PENDING,
            )
            .first()
        )
        if not friendship:
            raise NotFound("Friend request not found")
        return friendship

    def _set_status(self, friendship: Friendship, status: str) -> None:
        friendship.status = status
        friendship.updated_at = utcnow()
        self._commit(f"Failed to mark friend request {status}")
        self.db.refresh(friendship)
        log.info("Friendship %s is now %s", friendship.id, status)

    def _commit(self, failure_message: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            log.error("%s: %s", failure_message, exc)
            raise PersistenceFailure(failure_message) from exc

    @staticmethod
    def _event(event_type: str, friendship: Friendship, paths: Tuple[str, ...]) -> FriendshipEvent:
        return FriendshipEvent(
            type=event_type,
            friendship_id=friendship.id,
            user_ids=(friendship.requester_id, friendship.addressee_id),
            paths=paths,
        )
