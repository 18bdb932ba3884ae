# listings/views/listings.py

from rest_framework import mixins, viewsets
from rest_framework.permissions import SAFE_METHODS, BasePermission, IsAuthenticated

from listings.models import Plot, ProduceListing, Tool
from listings.serializers import PlotSerializer, ProduceListingSerializer, ToolSerializer


class IsListingOwnerOrReadOnly(BasePermission):
    message = "Only the listing owner can modify it"

    def has_object_permission(self, request, view, obj):
        if request.method in SAFE_METHODS:
            return True
        return getattr(obj, view.owner_field + "_id", None) == request.user.id


class _ListingViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """
    Listing CRUD surface (no delete: listings with history are retired via
    their status / is_active flag instead).
    """

    permission_classes = [IsAuthenticated, IsListingOwnerOrReadOnly]
    owner_field = "owner"
    http_method_names = ["get", "post", "patch", "head", "options"]

    def perform_create(self, serializer):
        serializer.save(**{self.owner_field: self.request.user})


class PlotViewSet(_ListingViewSet):
    queryset = Plot.objects.all()
    serializer_class = PlotSerializer
    filterset_fields = ["is_active", "city", "state", "instant_book"]


class ToolViewSet(_ListingViewSet):
    queryset = Tool.objects.all()
    serializer_class = ToolSerializer
    filterset_fields = ["status", "listing_type", "category"]


class ProduceListingViewSet(_ListingViewSet):
    queryset = ProduceListing.objects.all()
    serializer_class = ProduceListingSerializer
    owner_field = "seller"
    filterset_fields = ["status"]
