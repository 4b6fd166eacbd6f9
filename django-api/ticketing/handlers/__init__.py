from ticketing.handlers.views import (
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

__all__ = [
    "PurchaseView",
    "MyTicketsView",
    "StockCountView",
    "EventStockView",
    "EventStockStreamView",
    "AdminResyncView",
    "AdminRefundView",
    "AdminTransactionView",
    "AdminStatsView",
]
