from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from decimal import Decimal
import uuid

from apps.ledger.engine.money import CURRENCY_CHOICES
from apps.ledger.engine.records import SplitMethod


class SplitMethodChoices(models.TextChoices):
    EQUAL = SplitMethod.EQUAL.value, 'Equally'
    AMOUNT = SplitMethod.AMOUNT.value, 'By Amount'
    PERCENTAGE = SplitMethod.PERCENTAGE.value, 'By Percent'
    SHARES = SplitMethod.SHARES.value, 'By Shares'
    ADJUSTMENT = SplitMethod.ADJUSTMENT.value, 'Adjustments'


class TransactionQuerySet(models.QuerySet):

    def involving(self, participant):
        """Transactions where the participant paid or owes a share."""
        return self.filter(
            Q(payer=participant) |
            Q(payers__paid_by=participant) |
            Q(splits__owed_by=participant)
        ).distinct()


class Transaction(models.Model):
    """A shared expense, split among participants."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=200)

    # Financial details
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    # Blank for rows written before currencies were tracked
    currency = models.CharField(max_length=3, blank=True, choices=CURRENCY_CHOICES)
    split_method = models.CharField(
        max_length=20,
        choices=SplitMethodChoices.choices,
        default=SplitMethodChoices.EQUAL
    )

    # Single payer; multi-payer transactions also have TransactionPayer rows
    payer = models.ForeignKey(
        'people.Participant',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='paid_transactions'
    )
    created_by = models.ForeignKey(
        'people.Participant',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_transactions'
    )

    # Group context (nullable for personal expenses)
    group = models.ForeignKey(
        'people.Group',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='transactions'
    )

    date = models.DateField()
    note = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TransactionQuerySet.as_manager()

    class Meta:
        db_table = 'transactions'
        indexes = [
            models.Index(fields=['group', 'date']),
            models.Index(fields=['payer', 'date']),
            models.Index(fields=['date']),
        ]
        ordering = ['-date', '-created_at']

    def __str__(self):
        return f"{self.title} - {self.amount} {self.currency}"


class TransactionPayer(models.Model):
    """One payer's contribution to a multi-payer transaction."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    transaction = models.ForeignKey(Transaction, on_delete=models.CASCADE, related_name='payers')
    paid_by = models.ForeignKey(
        'people.Participant',
        on_delete=models.PROTECT,
        related_name='payer_contributions'
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )

    class Meta:
        db_table = 'transaction_payers'
        unique_together = [['transaction', 'paid_by']]

    def __str__(self):
        return f"{self.paid_by} paid {self.amount}"


class TransactionSplit(models.Model):
    """A participant's owed share of a transaction."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    transaction = models.ForeignKey(Transaction, on_delete=models.CASCADE, related_name='splits')
    owed_by = models.ForeignKey(
        'people.Participant',
        on_delete=models.PROTECT,
        related_name='owed_splits'
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    # Percentage, share count, exact amount or adjustment the user entered
    raw_amount = models.DecimalField(max_digits=14, decimal_places=4, null=True, blank=True)

    class Meta:
        db_table = 'transaction_splits'
        unique_together = [['transaction', 'owed_by']]
        indexes = [
            models.Index(fields=['owed_by']),
        ]

    def __str__(self):
        return f"{self.owed_by} owes {self.amount}"


class SettlementQuerySet(models.QuerySet):

    def involving(self, participant):
        return self.filter(Q(from_person=participant) | Q(to_person=participant))

    def between(self, a, b):
        return self.filter(
            Q(from_person=a, to_person=b) |
            Q(from_person=b, to_person=a)
        )


class Settlement(models.Model):
    """Money that moved from one participant to another to pay down a balance."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    from_person = models.ForeignKey(
        'people.Participant',
        on_delete=models.PROTECT,
        related_name='settlements_sent'
    )
    to_person = models.ForeignKey(
        'people.Participant',
        on_delete=models.PROTECT,
        related_name='settlements_received'
    )
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    currency = models.CharField(max_length=3, blank=True, choices=CURRENCY_CHOICES)
    date = models.DateField()
    note = models.TextField(blank=True)
    is_full_settlement = models.BooleanField(default=False)

    # Optional scope
    group = models.ForeignKey(
        'people.Group',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='settlements'
    )
    subscription = models.ForeignKey(
        'subscriptions.Subscription',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='settlements'
    )

    created_by = models.ForeignKey(
        'people.Participant',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='recorded_settlements'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = SettlementQuerySet.as_manager()

    class Meta:
        db_table = 'settlements'
        indexes = [
            models.Index(fields=['from_person', 'to_person']),
            models.Index(fields=['group', 'date']),
            models.Index(fields=['subscription', 'date']),
        ]
        ordering = ['-date', '-created_at']

    def __str__(self):
        return f"{self.from_person} paid {self.to_person} {self.amount} {self.currency}"
