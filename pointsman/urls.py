from django.urls import path

from .views import CustomerView, PurchaseView, RedemptionView, StatisticsView

app_name = "pointsman"

urlpatterns = [
    path("customers/<str:phone>/", CustomerView.as_view(), name="customer"),
    path("customers/<str:phone>/purchases/", PurchaseView.as_view(), name="purchases"),
    path("customers/<str:phone>/redemptions/", RedemptionView.as_view(), name="redemptions"),
    path("statistics/", StatisticsView.as_view(), name="statistics"),
]
