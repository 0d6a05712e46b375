import logging

from sqlalchemy.orm import Session

from ..models.booking import Booking, BookingStatus
from ..models.receipt import Receipt

logger = logging.getLogger(__name__)


class ReceiptError(ValueError):
    pass


def issue_receipt(db: Session, booking: Booking, final_price: float, personnel_name: str) -> Receipt:
    """One receipt per completed booking. Does not commit."""
    if booking.status != BookingStatus.COMPLETED:
        raise ReceiptError("Receipts can only be generated for completed bookings")
    if booking.receipt is not None:
        raise ReceiptError("A receipt already exists for this booking")
    receipt = Receipt(
        booking=booking,
        final_price=final_price,
        service_personnel_name=personnel_name.strip(),
    )
    db.add(receipt)
    booking.completed_price = final_price
    logger.info("Receipt issued for booking %s (final price %.2f)", booking.id, final_price)
    return receipt
