# app/services/payment_service.py

import logging
import time
from typing import Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.common.errors import (
    ExternalServiceFailure,
    InvalidAmount,
    InvalidPaymentType,
    InvalidSignature,
    MissingFields,
    ServiceNotConfigured,
    Unauthorized,
    UpdateFailed,
)
from app.core.security import payment_signature
from app.models.payment import (
    PAYMENT_TYPES,
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_PENDING,
    OrderCreate,
    OrderCreated,
    OrderRead,
    Payment,
    PaymentSummary,
    PaymentVerified,
    PaymentVerify,
)
from app.models.session import Identity
from app.services.razorpay_client import RazorpayClient, RazorpayError

log = logging.getLogger(__name__)


class PaymentService:

    def __init__(self, db: Session, razorpay: Optional[RazorpayClient], key_secret: Optional[str]):
        self.db = db
        self.razorpay = razorpay
        self.key_secret = key_secret

    async def create_order(self, identity: Optional[Identity], order_in: OrderCreate) -> OrderCreated:
        if identity is None:
            raise Unauthorized()
        if not order_in.amount or order_in.amount <= 0:
            raise InvalidAmount()
        if order_in.payment_type not in PAYMENT_TYPES:
            raise InvalidPaymentType()
        if self.razorpay is None:
            raise ServiceNotConfigured("Payments are not configured")

        try:
            order = await self.razorpay.create_order(
                amount=order_in.amount,
                currency=order_in.currency,
                receipt=f"hapien_{int(time.time() * 1000)}",
                notes={
                    "user_id": identity.id,
                    "payment_type": order_in.payment_type,
                    "reference_id": order_in.reference_id or "",
                },
            )
        except (RazorpayError, httpx.HTTPError) as exc:
            log.error("Error creating order: %s", exc)
            raise ExternalServiceFailure("Failed to create payment order") from exc

        # the provider order is already live, so a failed insert is only logged
        await run_in_threadpool(self._record_pending, identity.id, order.id, order_in)

        return OrderCreated(
            order=OrderRead(id=order.id, amount=order.amount, currency=order.currency),
            key=self.razorpay.key_id,
        )

    def _record_pending(self, user_id: str, order_id: str, order_in: OrderCreate) -> None:
        try:
            self.db.add(Payment(
                user_id=user_id,
                razorpay_order_id=order_id,
                amount=order_in.amount,
                currency=order_in.currency,
                payment_type=order_in.payment_type,
                reference_id=order_in.reference_id or None,
                extra=order_in.metadata,
                status=STATUS_PENDING,
            ))
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            log.error("Error storing payment for order %s: %s", order_id, exc)

    def verify(self, identity: Optional[Identity], data: PaymentVerify) -> PaymentVerified:
        if identity is None:
            raise Unauthorized()
        order_id = data.razorpay_order_id
        payment_id = data.razorpay_payment_id
        signature = data.razorpay_signature
        if not order_id or not payment_id or not signature:
            raise MissingFields()
        if not self.key_secret:
            raise ServiceNotConfigured("Payments are not configured")

        expected = payment_signature(order_id, payment_id, self.key_secret)
        if expected != signature:
            self._mark_failed(identity.id, order_id)
            raise InvalidSignature()

        # scoped to the caller: nobody can confirm another user's order
        payment = (
            self.db.query(Payment)
            .filter(Payment.razorpay_order_id == order_id, Payment.user_id == identity.id)
            .first()
        )
        if payment is None:
            log.error("No payment row for order %s and user %s", order_id, identity.id)
            raise UpdateFailed()

        if payment.status != STATUS_COMPLETED:
            payment.razorpay_payment_id = payment_id
            payment.razorpay_signature = signature
            payment.status = STATUS_COMPLETED
            try:
                self.db.commit()
            except SQLAlchemyError as exc:
                self.db.rollback()
                log.error("Error updating payment %s: %s", payment.id, exc)
                raise UpdateFailed() from exc
            self.db.refresh(payment)
            log.info("Payment %s completed for order %s", payment.id, order_id)

        return PaymentVerified(payment=PaymentSummary.model_validate(payment))

    def _mark_failed(self, user_id: str, order_id: str) -> None:
        try:
            updated = (
                self.db.query(Payment)
                .filter(
                    Payment.razorpay_order_id == order_id,
                    Payment.user_id == user_id,
                    Payment.status != STATUS_COMPLETED,
                )
                .update({Payment.status: STATUS_FAILED}, synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            log.error("Error marking order %s failed: %s", order_id, exc)
            return
        log.warning("Invalid signature for order %s (%s row(s) marked failed)", order_id, updated)
