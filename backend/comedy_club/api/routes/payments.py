"""
Return leg of the hosted payment flow.

The processor redirects the customer here. Whatever happens, the page that
shows the outcome gets a 200 and something it can display.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from comedy_club.db.session import get_db
from comedy_club.api.dependencies import get_notifier
from comedy_club.schemas.booking import BookingResponse, PaymentReturnResponse
from comedy_club.services.reconciliation_service import reconcile_payment
from comedy_club.services.interfaces import Notifier
from comedy_club.core.exceptions import ReconciliationFailed
from comedy_club.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/payments", tags=["Payments"])

FAILED_NOTICE = "We could not record your booking. If you were charged, please contact the club."


@router.get("/return", response_model=PaymentReturnResponse)
async def payment_return_endpoint(
    status: Optional[str] = Query(None),
    session: Optional[str] = Query(None),
    booking_data: Optional[str] = Query(None, alias="bookingData"),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    try:
        result = await reconcile_payment(db, status, session, booking_data, notifier)
    except ReconciliationFailed as e:
        logger.warning("payment_return_not_recorded", session=session, reason=e.message)
        return PaymentReturnResponse(
            recorded=False,
            payment_status=status,
            notice=f"{e.message}. {FAILED_NOTICE}",
        )

    return PaymentReturnResponse(
        recorded=True,
        payment_status=result.booking.payment_status,
        booking=BookingResponse.model_validate(result.booking),
        notice=result.notice,
    )
