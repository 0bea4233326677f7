"""
Idempotency-key resolution for charges.

The lookup in :func:`resolve` runs before the insert and is only a fast path:
two requests carrying the same unseen key can both miss it. The unique
constraint on ``payments.idempotency_key`` decides which insert wins, and the
loser calls :func:`recover_duplicate` to fetch the winner's row.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from payment_service import ledger
from payment_service.logger import get_logger
from payment_service.models import Payment

logger = get_logger(__name__)


async def resolve(session: AsyncSession, key: str) -> Optional[Payment]:
    existing = await ledger.find_payment_by_idempotency_key(session, key)
    if existing is not None:
        logger.info(f"Idempotency key {key!r} already charged as payment {existing.payment_id}")
    return existing


async def recover_duplicate(session: AsyncSession, key: str) -> Optional[Payment]:
    """Re-read the payment that won a concurrent insert for ``key``.

    The session must already be rolled back. Returns None when no row carries
    the key, meaning the integrity error came from another constraint.
    """
    existing = await ledger.find_payment_by_idempotency_key(session, key)
    if existing is not None:
        logger.info(f"Concurrent charge for key {key!r} lost the insert race to payment {existing.payment_id}")
    return existing
