# listings/urls.py

from rest_framework.routers import DefaultRouter

from listings.views import PlotViewSet, ProduceListingViewSet, ToolViewSet

app_name = "listings"

router = DefaultRouter()
router.register("plots", PlotViewSet, basename="plot")
router.register("tools", ToolViewSet, basename="tool")
router.register("produce", ProduceListingViewSet, basename="produce")

urlpatterns = router.urls
