"""
Collaborator dependencies, overridable through app.dependency_overrides.
"""

from comedy_club.infrastructure.payment_gateway import get_http_payment_gateway
from comedy_club.services.interfaces import Notifier, PaymentGateway
from comedy_club.services.notification_service import LoggingNotifier

_notifier = LoggingNotifier()


def get_payment_gateway() -> PaymentGateway:
    return get_http_payment_gateway()


def get_notifier() -> Notifier:
    return _notifier
