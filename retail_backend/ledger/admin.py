# ledger/admin.py

from django.contrib import admin

from ledger.models import (
    Channel,
    ClosingBalanceSnapshot,
    DailyConfirmation,
    LedgerEntry,
    OpeningBalanceSnapshot,
)

# ============================================================
# CHANNEL
# ============================================================


@admin.register(Channel)
class ChannelAdmin(admin.ModelAdmin):
    list_display = ("id", "kind", "name", "account_number", "is_active", "created_at")
    list_filter = ("kind", "is_active")
    search_fields = ("name", "account_number")
    readonly_fields = ("created_at", "updated_at")
    ordering = ("kind", "name")

    def has_delete_permission(self, request, obj=None):
        # deactivate instead; entries reference channels with PROTECT
        return False


# ============================================================
# LEDGER ENTRY (STRICTLY IMMUTABLE)
# ============================================================


@admin.register(LedgerEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "channel",
        "direction",
        "source",
        "source_document_id",
        "amount",
        "before_balance",
        "after_balance",
        "occurred_at",
    )
    list_filter = ("direction", "source", "channel", "rebased")
    search_fields = ("source_document_id", "description")
    ordering = ("occurred_at", "id")

    readonly_fields = (
        "channel",
        "direction",
        "source",
        "source_document_id",
        "amount",
        "occurred_at",
        "before_balance",
        "after_balance",
        "rebased",
        "reverses",
        "recorded_by",
        "description",
        "created_at",
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ============================================================
# SNAPSHOTS (service-managed)
# ============================================================


@admin.register(OpeningBalanceSnapshot)
class OpeningBalanceSnapshotAdmin(admin.ModelAdmin):
    list_display = ("date", "channel", "balance", "entry_watermark", "is_system", "recorded_by", "updated_at")
    list_filter = ("is_system", "channel")
    ordering = ("-date",)
    readonly_fields = (
        "date",
        "channel",
        "balance",
        "entry_watermark",
        "notes",
        "is_system",
        "recorded_by",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(ClosingBalanceSnapshot)
class ClosingBalanceSnapshotAdmin(admin.ModelAdmin):
    list_display = ("date", "cash_balance", "total", "entry_count", "computed_at")
    ordering = ("-date",)
    readonly_fields = (
        "date",
        "cash_balance",
        "bank_balances",
        "card_balances",
        "total",
        "entry_count",
        "created_at",
        "computed_at",
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(DailyConfirmation)
class DailyConfirmationAdmin(admin.ModelAdmin):
    list_display = ("date", "user", "confirmed", "confirmed_at", "confirmed_by")
    list_filter = ("confirmed",)
    ordering = ("-date",)
    readonly_fields = ("date", "user", "confirmed", "confirmed_at", "confirmed_by", "created_at")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
