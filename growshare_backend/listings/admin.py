# listings/admin.py

from django.contrib import admin

from listings.models import Plot, ProduceListing, Tool


@admin.register(Plot)
class PlotAdmin(admin.ModelAdmin):
    list_display = ("title", "owner", "price_per_month", "instant_book", "is_active")
    list_filter = ("is_active", "instant_book")
    search_fields = ("title", "city", "owner__email")


@admin.register(Tool)
class ToolAdmin(admin.ModelAdmin):
    list_display = ("name", "owner", "listing_type", "status", "daily_rate")
    list_filter = ("status", "listing_type")
    search_fields = ("name", "owner__email")


@admin.register(ProduceListing)
class ProduceListingAdmin(admin.ModelAdmin):
    list_display = ("product_name", "seller", "quantity", "unit", "price_per_unit", "status")
    list_filter = ("status",)
    search_fields = ("product_name", "seller__email")
