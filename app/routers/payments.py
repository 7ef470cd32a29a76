# app/routers/payments.py

from typing import Optional

from fastapi import APIRouter, Depends

from app.common.deps import get_optional_identity, get_payment_service
from app.models.payment import OrderCreate, OrderCreated, PaymentVerified, PaymentVerify
from app.models.session import Identity
from app.services.payment_service import PaymentService

router = APIRouter()


@router.post("/create-order", response_model=OrderCreated)
async def create_order(
    order_in: OrderCreate,
    identity: Optional[Identity] = Depends(get_optional_identity),
    service: PaymentService = Depends(get_payment_service),
):
    return await service.create_order(identity, order_in)


@router.post("/verify", response_model=PaymentVerified)
def verify_payment(
    data: PaymentVerify,
    identity: Optional[Identity] = Depends(get_optional_identity),
    service: PaymentService = Depends(get_payment_service),
):
    return service.verify(identity, data)
