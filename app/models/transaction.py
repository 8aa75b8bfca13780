from __future__ import annotations

import secrets
from dataclasses import dataclass
from uuid import UUID, uuid4

TRANSACTION_STATUSES: tuple[str, ...] = ("pending", "completed", "failed", "refunded")

# Enrollment resolution -> paired transaction status
SETTLEMENT_FOR_RESOLUTION: dict[str, str] = {
    "active": "completed",
    "rejected": "failed",
}


def new_reference() -> str:
    """Processor-style reference, e.g. ``tr_k3j9x0a1q2w8``."""
    return f"tr_{secrets.token_hex(6)}"


@dataclass(frozen=True, slots=True)
class Transaction:
    id: UUID
    reference: str
    user_id: UUID
    course_id: UUID
    amount: float
    payment_method: str
    status: str = "pending"  # pending|completed|failed|refunded
    currency: str = "USD"
    receipt_url: str | None = None
    created_at: int = 0
    updated_at: int = 0

    @staticmethod
    def new(
        *,
        user_id: UUID,
        course_id: UUID,
        amount: float,
        payment_method: str,
        created_at: int,
        receipt_url: str | None = None,
    ) -> Transaction:
        return Transaction(
            id=uuid4(),
            reference=new_reference(),
            user_id=user_id,
            course_id=course_id,
            amount=amount,
            payment_method=payment_method,
            receipt_url=receipt_url,
            created_at=created_at,
            updated_at=created_at,
        )
