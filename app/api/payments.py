"""Mock payment flow.

There is no gateway: "processing" a payment opens a pending enrollment
and a pending transaction that an admin later approves or rejects.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field

from app.api.dependencies import require_role, require_user
from app.api.enrollments import EnrollmentOut
from app.models.principal import Principal
from app.repos.unit_of_work import unit_of_work
from app.services import enrollment_service

router = APIRouter(prefix="/v1/payments", tags=["payments"])


class PaymentIn(BaseModel):
    course_id: UUID
    payment_method: str = Field(default="credit_card", max_length=32)
    reference: str | None = Field(default=None, max_length=128)


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    reference: str
    user_id: UUID
    course_id: UUID
    amount: float
    currency: str
    status: str
    payment_method: str
    receipt_url: str | None
    created_at: int
    updated_at: int


class PaymentOut(BaseModel):
    enrollment: EnrollmentOut
    transaction: TransactionOut


@router.post("/process", response_model=PaymentOut, status_code=status.HTTP_201_CREATED)
def process_payment(
    payload: PaymentIn,
    principal: Annotated[Principal, Depends(require_role("student"))],
) -> PaymentOut:
    enrollment, txn = enrollment_service.enroll_via_payment(
        unit_of_work,
        principal,
        payload.course_id,
        payment_method=payload.payment_method,
        reference=payload.reference,
    )
    return PaymentOut(
        enrollment=EnrollmentOut.model_validate(enrollment),
        transaction=TransactionOut.model_validate(txn),
    )


@router.get("/my-transactions", response_model=list[TransactionOut])
def my_transactions(
    principal: Annotated[Principal, Depends(require_user)],
) -> list[TransactionOut]:
    txns = enrollment_service.list_own_transactions(unit_of_work, principal)
    return [TransactionOut.model_validate(t) for t in txns]
