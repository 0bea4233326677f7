import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from payment_service import service
from payment_service.errors import BusinessRuleViolation, InternalError, NotFound, ValidationFailed
from payment_service.models import Payment, PaymentStatus
from payment_service.schemas import ChargeRequest, RefundRequest


@pytest.fixture
def mock_session():
    return AsyncMock(spec=AsyncSession)


def existing_payment(status=PaymentStatus.SUCCESS):
    return Payment(
        payment_id="pay-1",
        order_id="order-1",
        amount=Decimal("10.00"),
        currency="INR",
        status=status,
        payment_method="CARD",
        idempotency_key="key-1",
    )


@pytest.mark.parametrize(
    "value, expected",
    [
        (Decimal("10.005"), Decimal("10.01")),
        (Decimal("9.999"), Decimal("10.00")),
        ("10.004", Decimal("10.00")),
        (10.005, Decimal("10.01")),
        (7, Decimal("7.00")),
        (Decimal("-2.345"), Decimal("-2.35")),
    ],
)
def test_money_rounds_half_up_to_cents(value, expected):
    assert service.money(value) == expected
    assert service.money(value).as_tuple().exponent == -2


@pytest.mark.parametrize(
    "value, message",
    [
        (Decimal("1e30"), "amount is out of range"),
        (Decimal("10000000000.00"), "amount is out of range"),
        (Decimal("0.001"), "amount must be greater than zero"),
        (Decimal("-1"), "amount must be greater than zero"),
    ],
)
def test_normalize_amount_rejects_unstorable_values(value, message):
    with pytest.raises(ValidationFailed) as exc_info:
        service.normalize_amount(value)

    assert exc_info.value.message == message


def test_normalize_amount_accepts_column_maximum():
    assert service.normalize_amount(Decimal("9999999999.994")) == Decimal("9999999999.99")


@pytest.mark.parametrize(
    "raw, expected",
    [(None, 20), ("", 20), ("abc", 20), ("0", 20), ("-3", 20), ("7", 7), ("12abc", 12), (" 5", 5)],
)
def test_parse_page_param(raw, expected):
    assert service.parse_page_param(raw, 20) == expected


@pytest.mark.asyncio
async def test_charge_short_circuits_on_known_key(mock_session):
    payment = existing_payment()

    with patch("payment_service.idempotency.resolve", new=AsyncMock(return_value=payment)):
        outcome = await service.charge_payment(
            mock_session, "key-1", ChargeRequest(order_id="order-1", amount=Decimal("99"))
        )

    assert outcome.duplicate is True
    assert outcome.payment is payment
    mock_session.add.assert_not_called()
    mock_session.commit.assert_not_called()


@pytest.mark.asyncio
async def test_charge_missing_key_touches_nothing(mock_session):
    with pytest.raises(ValidationFailed):
        await service.charge_payment(mock_session, None, ChargeRequest(order_id="o", amount=Decimal("1")))

    mock_session.execute.assert_not_called()
    mock_session.add.assert_not_called()


@pytest.mark.asyncio
async def test_charge_commit_failure_rolls_back(mock_session):
    mock_session.commit.side_effect = OperationalError("INSERT", {}, Exception("server closed the connection"))

    with patch("payment_service.idempotency.resolve", new=AsyncMock(return_value=None)):
        with pytest.raises(InternalError) as exc_info:
            await service.charge_payment(
                mock_session, "key-2", ChargeRequest(order_id="order-2", amount=Decimal("5"))
            )

    assert "server closed the connection" in exc_info.value.message
    mock_session.add.assert_called_once()
    mock_session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_charge_stages_normalized_payment(mock_session):
    with patch("payment_service.idempotency.resolve", new=AsyncMock(return_value=None)):
        outcome = await service.charge_payment(
            mock_session, " key-3 ", ChargeRequest(order_id="order-3", amount=Decimal("12.345"))
        )

    staged = mock_session.add.call_args.args[0]
    assert staged is outcome.payment
    assert outcome.duplicate is False
    assert staged.amount == Decimal("12.35")
    assert staged.status == PaymentStatus.SUCCESS
    assert staged.idempotency_key == "key-3"
    assert staged.currency == "INR"
    assert staged.payment_method == "CARD"
    assert staged.created_at is not None
    mock_session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_refund_of_missing_payment(mock_session):
    mock_session.get.return_value = None

    with pytest.raises(NotFound):
        await service.refund_payment(mock_session, RefundRequest(payment_id="nope", amount=Decimal("1")))

    mock_session.add.assert_not_called()


@pytest.mark.asyncio
async def test_refund_of_failed_payment(mock_session):
    mock_session.get.return_value = existing_payment(status=PaymentStatus.FAILED)

    with pytest.raises(BusinessRuleViolation):
        await service.refund_payment(mock_session, RefundRequest(payment_id="pay-1", amount=Decimal("1")))

    mock_session.add.assert_not_called()
    mock_session.commit.assert_not_called()


@pytest.mark.asyncio
async def test_refund_commit_failure_rolls_back(mock_session):
    mock_session.get.return_value = existing_payment()
    mock_session.commit.side_effect = OperationalError("INSERT", {}, Exception("deadlock detected"))

    with pytest.raises(InternalError) as exc_info:
        await service.refund_payment(mock_session, RefundRequest(payment_id="pay-1", amount=Decimal("3")))

    mock_session.rollback.assert_awaited_once()
    assert "deadlock detected" in exc_info.value.message


@pytest.mark.asyncio
async def test_list_payments_reports_fetch_failure(mock_session):
    mock_session.execute.side_effect = OperationalError("SELECT", {}, Exception("timeout"))

    with pytest.raises(InternalError) as exc_info:
        await service.list_payments(mock_session, "1", "10")

    assert exc_info.value.message == "Failed to fetch payments"


@pytest.mark.asyncio
async def test_get_payment_uses_primary_key(mock_session):
    payment = existing_payment()
    mock_session.get.return_value = payment

    assert await service.get_payment(mock_session, "pay-1") is payment
    args, _ = mock_session.get.call_args
    assert args == (Payment, "pay-1")
