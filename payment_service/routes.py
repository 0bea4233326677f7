from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Header, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from payment_service import service
from payment_service.config import settings
from payment_service.database import get_session
from payment_service.schemas import (
    ChargeRequest,
    ChargeResponse,
    ErrorResponse,
    HealthResponse,
    PaymentPage,
    PaymentRead,
    RefundRead,
    RefundRequest,
    RefundResponse,
)

router = APIRouter(prefix="/v1", tags=["Payments"])

def _error_responses(*status_codes):
    return {code: {"model": ErrorResponse} for code in status_codes}


@router.get("/healthz", response_model=HealthResponse)
async def healthz():
    return HealthResponse(status="ok", service=settings.service_name, time=datetime.now(timezone.utc))


@router.post(
    "/payments/charge",
    response_model=ChargeResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses=_error_responses(400, 500),
)
async def charge_payment(
    response: Response,
    payload: Optional[ChargeRequest] = None,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    db: AsyncSession = Depends(get_session),
):
    outcome = await service.charge_payment(db, idempotency_key, payload)
    payment = PaymentRead.model_validate(outcome.payment)
    if outcome.duplicate:
        response.status_code = status.HTTP_200_OK
        return ChargeResponse(
            idempotent=True,
            message="Duplicate request - returning existing charge",
            payment=payment,
        )
    return ChargeResponse(message="Payment successful", payment=payment)


@router.post(
    "/payments/refund",
    response_model=RefundResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_error_responses(400, 404, 500),
)
async def refund_payment(payload: Optional[RefundRequest] = None, db: AsyncSession = Depends(get_session)):
    refund = await service.refund_payment(db, payload)
    return RefundResponse(message="Refund processed", refund=RefundRead.model_validate(refund))


@router.get("/payments", response_model=PaymentPage, responses=_error_responses(500))
async def list_payments(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    db: AsyncSession = Depends(get_session),
):
    return await service.list_payments(db, page, limit)


@router.get("/payments/{payment_id}", response_model=PaymentRead, responses=_error_responses(404, 500))
async def get_payment(payment_id: str, db: AsyncSession = Depends(get_session)):
    payment = await service.get_payment(db, payment_id)
    return PaymentRead.model_validate(payment)
