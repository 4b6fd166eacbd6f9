from django import forms
from django.contrib import admin, messages

from ticketing.domain.errors import DomainError
from ticketing.models import Event, TicketTier, Transaction
from ticketing.services import get_purchase_service

STOCK_FIELDS = ["available_stock", "version"]


class TicketTierForm(forms.ModelForm):
    """Catalog form for tiers. total_stock is fixed once the tier exists."""

    class Meta:
        model = TicketTier
        fields = ["event", "name", "price", "total_stock", "benefits", "position"]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if not self.instance._state.adding and "total_stock" in self.fields:
            self.fields["total_stock"].disabled = True


class TicketTierInline(admin.TabularInline):
    model = TicketTier
    form = TicketTierForm
    extra = 1
    fields = ["name", "price", "total_stock", "available_stock", "benefits", "position"]
    readonly_fields = ["available_stock"]


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ["title", "category", "venue", "starts_at"]
    search_fields = ["title", "venue"]
    list_filter = ["category"]
    inlines = [TicketTierInline]


@admin.register(TicketTier)
class TicketTierAdmin(admin.ModelAdmin):
    form = TicketTierForm
    list_display = ["name", "event", "price", "available_stock", "total_stock"]
    list_filter = ["event"]

    def get_readonly_fields(self, request, obj=None):
        if obj is not None:
            return ["event", *STOCK_FIELDS]
        return STOCK_FIELDS


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ["reference", "purchaser", "event", "tier", "quantity", "total_amount", "status", "created_at"]
    list_filter = ["status", "event"]
    search_fields = ["reference", "client_ref", "purchaser"]
    actions = ["refund_selected"]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def delete_model(self, request, obj):
        get_purchase_service().purge(str(obj.pk))

    def delete_queryset(self, request, queryset):
        service = get_purchase_service()
        for pk in queryset.values_list("pk", flat=True):
            try:
                service.purge(str(pk))
            except DomainError as exc:
                self.message_user(request, f"{pk}: {exc.message}", messages.WARNING)

    @admin.action(description="Refund selected transactions")
    def refund_selected(self, request, queryset):
        service = get_purchase_service()
        refunded = 0
        for pk in queryset.values_list("pk", flat=True):
            try:
                service.refund(str(pk))
            except DomainError as exc:
                self.message_user(request, f"{pk}: {exc.message}", messages.WARNING)
                continue
            refunded += 1
        self.message_user(request, f"Refunded {refunded} transaction(s).")
