# ==========================================
# apps/ledger/admin.py
# ==========================================

from django.contrib import admin
from django.utils.html import format_html

from apps.ledger.engine.money import format_amount
from .models import Transaction, TransactionPayer, TransactionSplit, Settlement
from .services.balance_queries import resolve_currency


class TransactionPayerInline(admin.TabularInline):
    """Inline admin for multi-payer contributions."""
    model = TransactionPayer
    extra = 0
    fields = ['paid_by', 'amount']

    def has_add_permission(self, request, obj=None):
        """Contributions are written by the transaction service."""
        return False


class TransactionSplitInline(admin.TabularInline):
    """Inline admin for computed splits within a transaction."""
    model = TransactionSplit
    extra = 0
    fields = ['owed_by', 'amount', 'raw_amount']
    readonly_fields = ['amount', 'raw_amount']

    def has_add_permission(self, request, obj=None):
        """Disable adding splits manually - they're computed by the service."""
        return False


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    """
    Admin interface for Transactions.

    Provides:
    - Transaction listing with amount and split method
    - Inline payers and splits
    - Filtering by split method, currency, group, date
    """

    list_display = [
        'title',
        'get_amount_display',
        'split_method',
        'payer',
        'get_group_name',
        'date',
        'created_at',
    ]

    list_filter = [
        'split_method',
        'currency',
        'group',
        'date',
    ]

    search_fields = [
        'title',
        'note',
        'payer__display_name',
        'group__name',
    ]

    readonly_fields = ['created_at', 'updated_at']
    inlines = [TransactionPayerInline, TransactionSplitInline]
    date_hierarchy = 'date'
    ordering = ['-date', '-created_at']

    fieldsets = (
        ('Transaction', {
            'fields': ('title', 'amount', 'currency', 'split_method', 'date')
        }),
        ('People', {
            'fields': ('payer', 'created_by', 'group')
        }),
        ('Notes', {
            'fields': ('note',),
            'classes': ('collapse',),
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    def get_amount_display(self, obj):
        return format_amount(obj.amount, resolve_currency(obj.currency))
    get_amount_display.short_description = 'Amount'
    get_amount_display.admin_order_field = 'amount'

    def get_group_name(self, obj):
        """Display group name or Personal badge."""
        if obj.group:
            return obj.group.name
        return format_html(
            '<span style="background: {}; color: {}; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            '#E8DDD4', '#2C1810', 'Personal'
        )
    get_group_name.short_description = 'Group'
    get_group_name.admin_order_field = 'group__name'

    def get_queryset(self, request):
        """Optimize query with select_related."""
        qs = super().get_queryset(request)
        return qs.select_related('payer', 'created_by', 'group')


@admin.register(Settlement)
class SettlementAdmin(admin.ModelAdmin):
    """Admin interface for Settlements."""

    list_display = [
        'from_person',
        'to_person',
        'get_amount_display',
        'full_settlement_badge',
        'group',
        'subscription',
        'date',
    ]

    list_filter = [
        'is_full_settlement',
        'currency',
        'date',
    ]

    search_fields = [
        'from_person__display_name',
        'to_person__display_name',
        'note',
    ]

    readonly_fields = ['created_by', 'created_at', 'updated_at']
    date_hierarchy = 'date'
    ordering = ['-date', '-created_at']

    def get_amount_display(self, obj):
        return format_amount(obj.amount, resolve_currency(obj.currency))
    get_amount_display.short_description = 'Amount'
    get_amount_display.admin_order_field = 'amount'

    def full_settlement_badge(self, obj):
        """Display full/partial settlement as colored badge."""
        if obj.is_full_settlement:
            bg, fg, label = '#6B8E5E', 'white', 'Full'
        else:
            bg, fg, label = '#E5C49A', '#2C1810', 'Partial'
        return format_html(
            '<span style="background: {}; color: {}; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            bg, fg, label
        )
    full_settlement_badge.short_description = 'Type'
    full_settlement_badge.admin_order_field = 'is_full_settlement'

    def get_queryset(self, request):
        """Optimize query with select_related."""
        qs = super().get_queryset(request)
        return qs.select_related('from_person', 'to_person', 'group', 'subscription')
