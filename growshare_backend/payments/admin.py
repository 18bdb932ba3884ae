# payments/admin.py

from django.contrib import admin

from payments.models import PaymentRecord, ReconciliationIssue, WebhookEvent


@admin.register(PaymentRecord)
class PaymentRecordAdmin(admin.ModelAdmin):
    list_display = ("external_ref", "status", "amount", "platform_fee", "currency", "attempt", "created_at")
    list_filter = ("status", "currency")
    search_fields = ("external_ref", "id")
    readonly_fields = [f.name for f in PaymentRecord._meta.fields]


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    list_display = ("event_id", "event_type", "outcome", "received_at", "processed_at")
    list_filter = ("outcome", "event_type")
    search_fields = ("event_id",)


@admin.register(ReconciliationIssue)
class ReconciliationIssueAdmin(admin.ModelAdmin):
    list_display = ("kind", "external_ref", "resolved", "created_at")
    list_filter = ("kind", "resolved")
    search_fields = ("external_ref",)
