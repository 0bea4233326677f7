"""
Ledger store access for payments and refunds.

Writers only stage rows on the session; committing or rolling back is left to
the workflow that owns the transaction.
"""

from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from payment_service.models import Payment, Refund


async def get_payment(session: AsyncSession, payment_id: str) -> Optional[Payment]:
    return await session.get(Payment, payment_id)


async def find_payment_by_idempotency_key(session: AsyncSession, key: str) -> Optional[Payment]:
    result = await session.execute(select(Payment).where(Payment.idempotency_key == key))
    return result.scalar_one_or_none()


def add_payment(session: AsyncSession, payment: Payment) -> Payment:
    session.add(payment)
    return payment


def add_refund(session: AsyncSession, refund: Refund) -> Refund:
    session.add(refund)
    return refund


async def count_payments(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(Payment))
    return result.scalar_one()


async def list_payments(session: AsyncSession, offset: int, limit: int) -> List[Payment]:
    result = await session.execute(
        select(Payment)
        .order_by(Payment.created_at.desc(), Payment.payment_id.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all())
