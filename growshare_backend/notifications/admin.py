# notifications/admin.py

from django.contrib import admin

from notifications.models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("type", "recipient", "title", "is_read", "created_at")
    list_filter = ("type", "is_read")
    search_fields = ("title", "recipient__email")
    readonly_fields = ("created_at",)
