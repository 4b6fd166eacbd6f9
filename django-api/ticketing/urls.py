from django.urls import path

from ticketing.handlers import (
    AdminRefundView,
    AdminResyncView,
    AdminStatsView,
    AdminTransactionView,
    EventStockStreamView,
    EventStockView,
    MyTicketsView,
    PurchaseView,
    StockCountView,
)

urlpatterns = [
    path("stock/purchase", PurchaseView.as_view(), name="stock-purchase"),
    path("stock/my-tickets", MyTicketsView.as_view(), name="stock-my-tickets"),
    path(
        "stock/count/<str:event_id>/<str:tier_id>",
        StockCountView.as_view(),
        name="stock-count",
    ),
    path("events/<str:event_id>/stock", EventStockView.as_view(), name="event-stock"),
    path(
        "events/<str:event_id>/stock/stream",
        EventStockStreamView.as_view(),
        name="event-stock-stream",
    ),
    path("admin/sync-stock", AdminResyncView.as_view(), name="admin-sync-stock"),
    path("admin/stats", AdminStatsView.as_view(), name="admin-stats"),
    path(
        "admin/transactions/<str:transaction_id>",
        AdminTransactionView.as_view(),
        name="admin-transaction",
    ),
    path(
        "admin/transactions/<str:transaction_id>/refund",
        AdminRefundView.as_view(),
        name="admin-transaction-refund",
    ),
]
