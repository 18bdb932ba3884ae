# payments/urls.py

from django.urls import path

from payments.views import CreateIntentView, RefundView

app_name = "payments"

urlpatterns = [
    path("create-intent/", CreateIntentView.as_view(), name="create-intent"),
    path("refund/", RefundView.as_view(), name="refund"),
]
