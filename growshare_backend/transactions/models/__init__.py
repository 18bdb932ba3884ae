"""
PATH: transactions/models/__init__.py

Transactions models export surface.
"""

from .base import KIND_BOOKING, KIND_CHOICES, KIND_ORDER, KIND_RENTAL, Transactable
from .booking import Booking
from .order import Order
from .tool_rental import ToolRental

MODEL_BY_KIND = {
    KIND_BOOKING: Booking,
    KIND_RENTAL: ToolRental,
    KIND_ORDER: Order,
}

__all__ = [
    "Booking",
    "KIND_BOOKING",
    "KIND_CHOICES",
    "KIND_ORDER",
    "KIND_RENTAL",
    "MODEL_BY_KIND",
    "Order",
    "ToolRental",
    "Transactable",
]
