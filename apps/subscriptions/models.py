# ==========================================
# apps/subscriptions/models.py
# ==========================================

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from datetime import timedelta
from decimal import Decimal
import calendar
import uuid

from apps.ledger.engine.money import CURRENCY_CHOICES


class BillingCycle(models.TextChoices):
    WEEKLY = 'weekly', 'Weekly'
    MONTHLY = 'monthly', 'Monthly'
    YEARLY = 'yearly', 'Yearly'
    CUSTOM = 'custom', 'Custom'


def add_months(start, months):
    """Same day ``months`` later, clamped to the end of shorter months."""
    index = start.month - 1 + months
    year, month = start.year + index // 12, index % 12 + 1
    return start.replace(year=year, month=month, day=min(start.day, calendar.monthrange(year, month)[1]))


class Subscription(models.Model):
    """Recurring expense, optionally shared equally among subscribers."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    currency = models.CharField(max_length=3, blank=True, choices=CURRENCY_CHOICES)
    cycle = models.CharField(max_length=20, choices=BillingCycle.choices, default=BillingCycle.MONTHLY)
    custom_cycle_days = models.PositiveIntegerField(null=True, blank=True)

    is_shared = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)

    # Other people sharing the bill; the creator is implied
    subscribers = models.ManyToManyField('people.Participant', related_name='subscriptions', blank=True)
    created_by = models.ForeignKey(
        'people.Participant',
        on_delete=models.CASCADE,
        related_name='created_subscriptions'
    )
    note = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'subscriptions'
        indexes = [
            models.Index(fields=['created_by', 'is_active']),
        ]
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.amount} {self.currency}/{self.cycle})"

    @property
    def cycle_days(self):
        if self.cycle == BillingCycle.WEEKLY:
            return 7
        if self.cycle == BillingCycle.MONTHLY:
            return 30
        if self.cycle == BillingCycle.YEARLY:
            return 365
        return self.custom_cycle_days or 30

    @property
    def monthly_equivalent(self):
        """Cost normalized to one month, for totals across cycles."""
        if self.cycle == BillingCycle.MONTHLY:
            return self.amount
        if self.cycle == BillingCycle.WEEKLY:
            return (self.amount * 52 / 12).quantize(Decimal('0.01'))
        if self.cycle == BillingCycle.YEARLY:
            return (self.amount / 12).quantize(Decimal('0.01'))
        return (self.amount * 30 / self.cycle_days).quantize(Decimal('0.01'))

    def next_billing_date(self, from_date=None):
        """
        One billing cycle after ``from_date``.

        Without ``from_date`` the cycle runs from the latest payment, or from
        the creation date when nothing has been paid yet.
        """
        if from_date is None:
            from_date = self.payments.order_by('-date').values_list('date', flat=True).first()
        if from_date is None:
            from_date = timezone.localdate(self.created_at)

        if self.cycle == BillingCycle.MONTHLY:
            return add_months(from_date, 1)
        if self.cycle == BillingCycle.YEARLY:
            return add_months(from_date, 12)
        return from_date + timedelta(days=self.cycle_days)

    def member_ids(self):
        """Everyone sharing the bill, creator included."""
        ids = {self.created_by_id}
        ids.update(self.subscribers.values_list('id', flat=True))
        return ids


class SubscriptionPayment(models.Model):
    """One billing payment, made by one member on behalf of all."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    subscription = models.ForeignKey(Subscription, on_delete=models.CASCADE, related_name='payments')
    payer = models.ForeignKey(
        'people.Participant',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='subscription_payments'
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    currency = models.CharField(max_length=3, blank=True, choices=CURRENCY_CHOICES)
    date = models.DateField()
    note = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'subscription_payments'
        indexes = [
            models.Index(fields=['subscription', 'date']),
        ]
        ordering = ['-date', '-created_at']

    def __str__(self):
        return f"{self.subscription.name}: {self.amount} {self.currency} on {self.date}"
