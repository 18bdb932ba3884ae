# transactions/views/transactables.py

from django.db.models import Q
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from permissions.roles import ACTOR_COUNTERPARTY, ACTOR_OWNER, IsTransactionParty
from transactions.models import KIND_BOOKING, KIND_ORDER, KIND_RENTAL
from transactions.serializers import (
    AllowedTransitionsSerializer,
    BookingCreateSerializer,
    BookingSerializer,
    OrderCreateSerializer,
    OrderSerializer,
    ToolRentalCreateSerializer,
    ToolRentalSerializer,
    TransitionCommandSerializer,
)
from transactions.services.creation_service import create_booking, create_order, create_tool_rental
from transactions.services.transition_service import apply_transition, transitions_for_user

ROLE_PARAM = OpenApiParameter(
    name="role",
    description="Only transactions where I am the owner or the counterparty",
    required=False,
    type=str,
    enum=[ACTOR_OWNER, ACTOR_COUNTERPARTY],
)


class TransactableViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    Shared HTTP surface for bookings, tool rentals and orders.

    - list:      transactions where the requester is a party
    - retrieve:  parties only (403 for anyone else)
    - create:    command serializer -> creation service
    - partial_update: status and/or notes -> transition service
    - transitions: statuses the requester may move to next

    Domain errors propagate to backend.api_errors.api_exception_handler.
    """

    kind = ""
    owner_lookup = ""
    counterparty_lookup = ""
    related = ()
    create_serializer_class = None

    permission_classes = [IsAuthenticated, IsTransactionParty]
    filterset_fields = ["status"]
    http_method_names = ["get", "post", "patch", "head", "options"]
    lookup_value_regex = "[0-9a-fA-F-]{36}"

    def get_queryset(self):
        qs = self.serializer_class.Meta.model.objects.select_related(*self.related)
        if self.action != "list":
            return qs

        user = self.request.user
        owner_q = Q(**{self.owner_lookup: user})
        counterparty_q = Q(**{self.counterparty_lookup: user})

        role = self.request.query_params.get("role")
        if role == ACTOR_OWNER:
            return qs.filter(owner_q)
        if role == ACTOR_COUNTERPARTY:
            return qs.filter(counterparty_q)
        return qs.filter(owner_q | counterparty_q)

    @extend_schema(parameters=[ROLE_PARAM])
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    def perform_create_command(self, data: dict):
        raise NotImplementedError

    def create(self, request, *args, **kwargs):
        command = self.create_serializer_class(data=request.data)
        command.is_valid(raise_exception=True)
        instance = self.perform_create_command(command.validated_data)
        return Response(
            self.get_serializer(instance).data,
            status=status.HTTP_201_CREATED,
        )

    def partial_update(self, request, *args, **kwargs):
        command = TransitionCommandSerializer(data=request.data)
        command.is_valid(raise_exception=True)

        result = apply_transition(
            kind=self.kind,
            entity_id=kwargs[self.lookup_field],
            user=request.user,
            desired_status=command.validated_data.get("status"),
            expected_status=command.validated_data.get("expected_status"),
            notes=command.notes_payload,
        )
        return Response(self.get_serializer(result.transactable).data)

    @extend_schema(responses=AllowedTransitionsSerializer)
    @action(detail=True, methods=["get"], url_path="transitions")
    def transitions(self, request, pk=None):
        obj = self.get_object()
        return Response(transitions_for_user(kind=self.kind, transactable=obj, user=request.user))


@extend_schema(request=TransitionCommandSerializer, methods=["PATCH"])
@extend_schema(request=BookingCreateSerializer, methods=["POST"])
class BookingViewSet(TransactableViewSet):
    kind = KIND_BOOKING
    serializer_class = BookingSerializer
    create_serializer_class = BookingCreateSerializer
    owner_lookup = "plot__owner"
    counterparty_lookup = "renter"
    related = ("plot",)

    def perform_create_command(self, data):
        return create_booking(
            plot_id=data["plot_id"],
            renter=self.request.user,
            start_date=data["start_date"],
            end_date=data["end_date"],
            message=data.get("message", ""),
        )


@extend_schema(request=TransitionCommandSerializer, methods=["PATCH"])
@extend_schema(request=ToolRentalCreateSerializer, methods=["POST"])
class ToolRentalViewSet(TransactableViewSet):
    kind = KIND_RENTAL
    serializer_class = ToolRentalSerializer
    create_serializer_class = ToolRentalCreateSerializer
    owner_lookup = "tool__owner"
    counterparty_lookup = "renter"
    related = ("tool",)

    def perform_create_command(self, data):
        return create_tool_rental(
            tool_id=data["tool_id"],
            renter=self.request.user,
            start_date=data["start_date"],
            end_date=data["end_date"],
            renter_notes=data.get("renter_notes", ""),
        )


@extend_schema(request=TransitionCommandSerializer, methods=["PATCH"])
@extend_schema(request=OrderCreateSerializer, methods=["POST"])
class OrderViewSet(TransactableViewSet):
    kind = KIND_ORDER
    serializer_class = OrderSerializer
    create_serializer_class = OrderCreateSerializer
    owner_lookup = "listing__seller"
    counterparty_lookup = "buyer"
    related = ("listing",)

    def perform_create_command(self, data):
        return create_order(
            listing_id=data["listing_id"],
            buyer=self.request.user,
            quantity=data["quantity"],
            delivery_method=data["delivery_method"],
            delivery_address=data.get("delivery_address", ""),
            notes=data.get("notes", ""),
        )
