# app/models/payment.py

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String

from app.models.base import Base, new_uuid, utcnow

PAYMENT_TYPES = ("hangout", "subscription", "feature")

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=new_uuid, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    razorpay_order_id = Column(String(64), nullable=False, index=True)
    razorpay_payment_id = Column(String(64), nullable=True)
    razorpay_signature = Column(String(128), nullable=True)

    amount = Column(Integer, nullable=False)  # minor units (paisa)
    currency = Column(String(8), default="INR", nullable=False)
    payment_type = Column(String(20), nullable=False)
    reference_id = Column(String(64), nullable=True)
    # "metadata" is reserved on declarative classes
    extra = Column("metadata", JSON, default=dict)

    status = Column(String(20), default=STATUS_PENDING, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class OrderCreate(BaseModel):
    amount: Optional[int] = None
    currency: str = "INR"
    payment_type: Optional[str] = None
    reference_id: Optional[str] = None
    metadata: Dict[str, Any] = {}


class OrderRead(BaseModel):
    id: str
    amount: int
    currency: str


class OrderCreated(BaseModel):
    success: bool = True
    order: OrderRead
    key: Optional[str] = None


class PaymentVerify(BaseModel):
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None


class PaymentSummary(BaseModel):
    id: str
    status: str
    payment_type: str
    reference_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class PaymentVerified(BaseModel):
    success: bool = True
    message: str = "Payment verified successfully"
    payment: PaymentSummary
