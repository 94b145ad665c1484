"""
Collaborator interfaces. Services receive implementations through FastAPI
dependencies so tests can substitute fakes.
"""

from .notifier import BookingConfirmation, Notifier
from .payment_gateway import PaymentGateway

__all__ = ['BookingConfirmation', 'Notifier', 'PaymentGateway']
