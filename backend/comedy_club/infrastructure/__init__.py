"""
Infrastructure layer - external system integrations.
Keeps business logic clean from implementation details.
"""

from .payment_gateway import HttpPaymentGateway, get_http_payment_gateway

__all__ = ['HttpPaymentGateway', 'get_http_payment_gateway']
