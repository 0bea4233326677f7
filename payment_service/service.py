import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from payment_service import idempotency, ledger
from payment_service.config import settings
from payment_service.errors import BusinessRuleViolation, InternalError, NotFound, ValidationFailed
from payment_service.logger import get_logger
from payment_service.models import Payment, PaymentStatus, Refund, new_id, utcnow
from payment_service.schemas import ChargeRequest, PaymentPage, PaymentRead, RefundRequest

logger = get_logger(__name__)

CENTS = Decimal("0.01")
# largest value a NUMERIC(12, 2) column holds
MAX_AMOUNT = Decimal("9999999999.99")
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class ChargeOutcome:
    payment: Payment
    duplicate: bool = False


def money(value) -> Decimal:
    """Round a monetary amount to two decimal places, halves away from zero."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def normalize_amount(value) -> Decimal:
    try:
        amount = money(value)
    except InvalidOperation:
        raise ValidationFailed("amount is out of range")
    if amount <= 0:
        raise ValidationFailed("amount must be greater than zero")
    if amount > MAX_AMOUNT:
        raise ValidationFailed("amount is out of range")
    return amount


def parse_page_param(raw: Optional[str], default: int) -> int:
    if raw is None:
        return default
    match = _LEADING_INT.match(str(raw))
    if not match:
        return default
    value = int(match.group(1))
    return value if value > 0 else default


async def charge_payment(
    session: AsyncSession, idempotency_key: Optional[str], request: Optional[ChargeRequest]
) -> ChargeOutcome:
    key = (idempotency_key or "").strip()
    if not key:
        raise ValidationFailed("Missing Idempotency-Key header")

    request = request or ChargeRequest()
    if not request.order_id or not request.amount:
        raise ValidationFailed("order_id and amount are required")

    amount = normalize_amount(request.amount)

    try:
        existing = await idempotency.resolve(session, key)
    except SQLAlchemyError as e:
        logger.exception(f"Idempotency lookup failed for key {key!r}")
        raise InternalError(str(e)) from e
    if existing is not None:
        return ChargeOutcome(existing, duplicate=True)

    # Payment gateway is simulated: every new charge succeeds
    payment = Payment(
        payment_id=new_id(),
        order_id=request.order_id,
        amount=amount,
        currency=request.currency or settings.default_currency,
        status=PaymentStatus.SUCCESS,
        payment_method=request.payment_method or settings.default_payment_method,
        idempotency_key=key,
        created_at=utcnow(),
    )

    try:
        ledger.add_payment(session, payment)
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        winner = await _recover_duplicate(session, key, e)
        return ChargeOutcome(winner, duplicate=True)
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception(f"Charge failed for order {request.order_id}")
        raise InternalError(str(e)) from e

    logger.info(
        f"Payment {payment.payment_id} charged: order={payment.order_id} "
        f"amount={payment.amount} {payment.currency}"
    )
    return ChargeOutcome(payment)


async def _recover_duplicate(session: AsyncSession, key: str, error: IntegrityError) -> Payment:
    try:
        winner = await idempotency.recover_duplicate(session, key)
    except SQLAlchemyError as e:
        logger.exception(f"Duplicate lookup failed for key {key!r}")
        raise InternalError(str(e)) from e
    if winner is None:
        logger.error(f"Charge insert violated a constraint other than the idempotency key: {error}")
        raise InternalError(str(error.orig or error))
    return winner


async def refund_payment(session: AsyncSession, request: Optional[RefundRequest]) -> Refund:
    request = request or RefundRequest()
    if not request.payment_id or not request.amount:
        raise ValidationFailed("payment_id and amount are required")

    amount = normalize_amount(request.amount)

    try:
        payment = await ledger.get_payment(session, request.payment_id)
    except SQLAlchemyError as e:
        logger.exception(f"Payment lookup failed for refund of {request.payment_id}")
        raise InternalError(str(e)) from e

    if payment is None:
        raise NotFound("Payment not found")
    if payment.status != PaymentStatus.SUCCESS:
        raise BusinessRuleViolation("Only successful payments can be refunded")

    payment_id = payment.payment_id
    # TODO: reject refunds whose running total exceeds payment.amount once finance signs off on partial-refund rules
    refund = Refund(
        refund_id=new_id(),
        payment_id=payment_id,
        amount=amount,
        created_at=utcnow(),
    )

    try:
        ledger.add_refund(session, refund)
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception(f"Refund failed for payment {payment_id}")
        raise InternalError(str(e)) from e

    logger.info(f"Refund {refund.refund_id} processed: payment={payment_id} amount={refund.amount}")
    return refund


async def get_payment(session: AsyncSession, payment_id: str) -> Payment:
    try:
        payment = await ledger.get_payment(session, payment_id)
    except SQLAlchemyError as e:
        logger.exception(f"Get payment {payment_id} failed")
        raise InternalError(str(e)) from e
    if payment is None:
        raise NotFound("Payment not found")
    return payment


async def list_payments(session: AsyncSession, page: Optional[str] = None, limit: Optional[str] = None) -> PaymentPage:
    page_number = parse_page_param(page, DEFAULT_PAGE)
    page_size = min(parse_page_param(limit, DEFAULT_LIMIT), settings.max_page_limit)
    offset = (page_number - 1) * page_size

    try:
        total = await ledger.count_payments(session)
        rows = await ledger.list_payments(session, offset, page_size)
    except SQLAlchemyError as e:
        logger.exception("List payments failed")
        raise InternalError("Failed to fetch payments") from e

    return PaymentPage(
        page=page_number,
        limit=page_size,
        total=total,
        data=[PaymentRead.model_validate(row) for row in rows],
    )
