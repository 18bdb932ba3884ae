# transactions/api/urls.py

from rest_framework.routers import SimpleRouter

from transactions.views import BookingViewSet, OrderViewSet, ToolRentalViewSet

app_name = "transactions"

router = SimpleRouter()
router.register("bookings", BookingViewSet, basename="booking")
router.register("tool-rentals", ToolRentalViewSet, basename="tool-rental")
router.register("orders", OrderViewSet, basename="order")

urlpatterns = router.urls
