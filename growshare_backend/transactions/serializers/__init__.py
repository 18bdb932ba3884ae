from .commands import (
    BookingCreateSerializer,
    OrderCreateSerializer,
    ToolRentalCreateSerializer,
    TransitionCommandSerializer,
)
from .read import (
    AllowedTransitionsSerializer,
    BookingSerializer,
    OrderSerializer,
    ToolRentalSerializer,
)

__all__ = [
    "AllowedTransitionsSerializer",
    "BookingCreateSerializer",
    "BookingSerializer",
    "OrderCreateSerializer",
    "OrderSerializer",
    "ToolRentalCreateSerializer",
    "ToolRentalSerializer",
    "TransitionCommandSerializer",
]
