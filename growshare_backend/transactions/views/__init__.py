from .transactables import BookingViewSet, OrderViewSet, ToolRentalViewSet

__all__ = [
    "BookingViewSet",
    "OrderViewSet",
    "ToolRentalViewSet",
]
