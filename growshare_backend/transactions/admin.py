# transactions/admin.py

from django.contrib import admin

from transactions.models import Booking, Order, ToolRental

# Status is read-only here: every change must go through the transition
# service so notifications and inventory stay consistent.
LIFECYCLE_READONLY = ("id", "status", "total_amount", "paid_at", "created_at", "updated_at")


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("id", "plot", "renter", "status", "start_date", "end_date", "total_amount")
    list_filter = ("status",)
    search_fields = ("id", "plot__title", "renter__email")
    readonly_fields = LIFECYCLE_READONLY + (
        "approved_at",
        "activated_at",
        "rejected_at",
        "completed_at",
        "cancelled_at",
        "stripe_payment_id",
    )


@admin.register(ToolRental)
class ToolRentalAdmin(admin.ModelAdmin):
    list_display = ("id", "tool", "renter", "status", "start_date", "end_date", "tool_held")
    list_filter = ("status", "tool_held")
    search_fields = ("id", "tool__name", "renter__email")
    readonly_fields = LIFECYCLE_READONLY + (
        "tool_held",
        "approved_at",
        "picked_up_at",
        "returned_at",
        "cancelled_at",
    )


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "listing", "buyer", "quantity", "status", "total_amount")
    list_filter = ("status", "delivery_method")
    search_fields = ("id", "listing__product_name", "buyer__email")
    readonly_fields = LIFECYCLE_READONLY + (
        "inventory_decremented",
        "inventory_restored",
        "confirmed_at",
        "ready_at",
        "completed_at",
        "cancelled_at",
    )
