# ==========================================
# apps/subscriptions/admin.py
# ==========================================

from django.contrib import admin
from django.utils.html import format_html

from apps.ledger.engine.money import format_amount
from apps.ledger.services import resolve_currency
from .models import Subscription, SubscriptionPayment


class SubscriptionPaymentInline(admin.TabularInline):
    """Inline admin for payments within a subscription."""
    model = SubscriptionPayment
    extra = 0
    fields = ['payer', 'amount', 'currency', 'date', 'note']


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    """
    Admin interface for Subscriptions.

    Provides:
    - Subscription listing with cost per cycle and sharing status
    - Inline payments
    - Filtering by cycle, sharing and activity
    """

    list_display = [
        'name',
        'get_amount_display',
        'cycle',
        'get_shared_badge',
        'is_active',
        'created_by',
        'created_at',
    ]

    list_filter = [
        'cycle',
        'is_shared',
        'is_active',
        'currency',
    ]

    search_fields = [
        'name',
        'note',
        'created_by__display_name',
    ]

    readonly_fields = ['id', 'created_at', 'updated_at']
    filter_horizontal = ['subscribers']
    inlines = [SubscriptionPaymentInline]

    fieldsets = (
        ('Subscription', {
            'fields': ('id', 'name', 'amount', 'currency', 'note')
        }),
        ('Billing', {
            'fields': ('cycle', 'custom_cycle_days', 'is_active')
        }),
        ('Sharing', {
            'fields': ('is_shared', 'created_by', 'subscribers')
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def get_queryset(self, request):
        """Optimize queries with select_related."""
        qs = super().get_queryset(request)
        return qs.select_related('created_by')

    def get_amount_display(self, obj):
        return format_amount(obj.amount, resolve_currency(obj.currency))
    get_amount_display.short_description = 'Amount'
    get_amount_display.admin_order_field = 'amount'

    def get_shared_badge(self, obj):
        if obj.is_shared:
            bg, fg, label = '#6B8E5E', 'white', 'Shared'
        else:
            bg, fg, label = '#E8DDD4', '#2C1810', 'Personal'
        return format_html(
            '<span style="background: {}; color: {}; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            bg, fg, label
        )
    get_shared_badge.short_description = 'Sharing'


@admin.register(SubscriptionPayment)
class SubscriptionPaymentAdmin(admin.ModelAdmin):
    list_display = ['subscription', 'payer', 'amount', 'currency', 'date']
    list_filter = ['date', 'currency']
    search_fields = ['subscription__name', 'payer__display_name', 'note']
    readonly_fields = ['id', 'created_at']
    date_hierarchy = 'date'

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related('subscription', 'payer')
