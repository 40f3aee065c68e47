from decimal import Decimal
from rest_framework import serializers

from apps.ledger.engine.money import CURRENCY_CHOICES, format_amount, quantize_amount
from apps.ledger.engine.splits import MAX_AMOUNT
from apps.people.serializers import ParticipantMinimalSerializer
from .models import Transaction, TransactionPayer, TransactionSplit, Settlement, SplitMethodChoices
from .services.balance_queries import resolve_currency


# =============================================================================
# Fields
# =============================================================================

class CurrencyBalanceField(serializers.Field):
    """
    Read-only representation of a CurrencyBalance.

    Renders settled-out entries away and lists the rest largest first::

        [{"currency": "USD", "amount": "-10.00", "formatted": "-$10.00"}]
    """

    def __init__(self, **kwargs):
        kwargs['read_only'] = True
        super().__init__(**kwargs)

    def to_representation(self, balance):
        return [
            {
                'currency': code,
                'amount': str(quantize_amount(amount, code)),
                'formatted': format_amount(amount, code),
            }
            for code, amount in balance.sorted_currencies()
        ]


class AmountField(serializers.DecimalField):
    """Positive money amount with cent precision."""

    def __init__(self, **kwargs):
        kwargs.setdefault('max_digits', 12)
        kwargs.setdefault('decimal_places', 2)
        kwargs.setdefault('min_value', Decimal('0.01'))
        kwargs.setdefault('max_value', MAX_AMOUNT)
        super().__init__(**kwargs)


# =============================================================================
# Input Serializers
# =============================================================================

class PayerInputSerializer(serializers.Serializer):
    participant = serializers.UUIDField()
    amount = AmountField()


class SplitInputSerializer(serializers.Serializer):
    """
    Validate the split part of a transaction.

    Fields:
        amount (Decimal): Total amount
        currency (str): Currency code (defaults to LEDGER_DEFAULT_CURRENCY)
        split_method (str): equal, amount, percentage, shares or adjustment
        participants (list[UUID]): Participants owing a share
        raw_inputs (dict): Per-participant amount, percentage, share count
            or adjustment, keyed by participant id
    """

    amount = AmountField()
    currency = serializers.ChoiceField(choices=CURRENCY_CHOICES, required=False)
    split_method = serializers.ChoiceField(
        choices=SplitMethodChoices.choices,
        required=False,
        default=SplitMethodChoices.EQUAL
    )
    participants = serializers.ListField(child=serializers.UUIDField(), min_length=1)
    raw_inputs = serializers.DictField(
        child=serializers.DecimalField(max_digits=14, decimal_places=4),
        required=False,
        default=dict
    )

    def validate_participants(self, value):
        if len(set(value)) != len(value):
            raise serializers.ValidationError('Each participant may only appear once')
        return value


class TransactionCreateSerializer(SplitInputSerializer):
    """Validate input for creating a transaction."""

    title = serializers.CharField(max_length=200)
    date = serializers.DateField(required=False)
    payer = serializers.UUIDField(required=False)
    payers = PayerInputSerializer(many=True, required=False)
    group = serializers.UUIDField(required=False)
    note = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs.get('payer') and attrs.get('payers'):
            raise serializers.ValidationError({
                'payers': 'Give either a single payer or a list of payers, not both'
            })
        return attrs


class TransactionUpdateSerializer(serializers.Serializer):
    """Validate input for editing a transaction."""

    title = serializers.CharField(max_length=200, required=False)
    amount = AmountField(required=False)
    date = serializers.DateField(required=False)
    note = serializers.CharField(required=False, allow_blank=True)
    payer = serializers.UUIDField(required=False)
    payers = PayerInputSerializer(many=True, required=False)

    def validate(self, attrs):
        if attrs.get('payer') and attrs.get('payers'):
            raise serializers.ValidationError({
                'payers': 'Give either a single payer or a list of payers, not both'
            })
        return attrs


class TransactionFilterSerializer(serializers.Serializer):
    """
    Validate query parameters for transaction filtering.

    Query Parameters:
        group (UUID): Filter by group ID
        date_from (date): Filter transactions from this date
        date_to (date): Filter transactions to this date
    """

    group = serializers.UUIDField(required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)

    def validate(self, attrs):
        """Validate date range."""
        date_from = attrs.get('date_from')
        date_to = attrs.get('date_to')

        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError({
                'date_to': 'End date must be after start date'
            })

        return attrs


class SettlementCreateSerializer(serializers.Serializer):
    """
    Validate input for recording a settlement.

    Fields:
        counterpart (UUID): Who the viewer is settling with
        amount (Decimal): Optional; omit to settle the full balance
        currency (str): Optional; defaults to the largest outstanding currency
        group (UUID): Optional; settle only the balance within this group
        strict (bool): Reject amounts above the balance instead of capping
    """

    counterpart = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    currency = serializers.ChoiceField(choices=CURRENCY_CHOICES, required=False)
    note = serializers.CharField(required=False, allow_blank=True, default='')
    date = serializers.DateField(required=False)
    group = serializers.UUIDField(required=False)
    strict = serializers.BooleanField(required=False, default=False)


class SettleAllSerializer(serializers.Serializer):
    group = serializers.UUIDField(required=False)
    note = serializers.CharField(required=False, allow_blank=True, default='')
    date = serializers.DateField(required=False)


class SettlementFilterSerializer(serializers.Serializer):
    person = serializers.UUIDField(required=False)
    group = serializers.UUIDField(required=False)


# =============================================================================
# Output Serializers
# =============================================================================

class TransactionPayerSerializer(serializers.ModelSerializer):
    paid_by = ParticipantMinimalSerializer(read_only=True)

    class Meta:
        model = TransactionPayer
        fields = ['paid_by', 'amount']
        read_only_fields = fields


class TransactionSplitSerializer(serializers.ModelSerializer):
    owed_by = ParticipantMinimalSerializer(read_only=True)

    class Meta:
        model = TransactionSplit
        fields = ['owed_by', 'amount', 'raw_amount']
        read_only_fields = fields


class TransactionSerializer(serializers.ModelSerializer):
    """Main serializer for transactions."""

    payer = ParticipantMinimalSerializer(read_only=True)
    created_by = ParticipantMinimalSerializer(read_only=True)
    payers = TransactionPayerSerializer(many=True, read_only=True)
    splits = TransactionSplitSerializer(many=True, read_only=True)
    currency = serializers.SerializerMethodField()

    class Meta:
        model = Transaction
        fields = [
            'id',
            'title',
            'amount',
            'currency',
            'split_method',
            'payer',
            'payers',
            'splits',
            'group',
            'date',
            'note',
            'created_by',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_currency(self, obj):
        return resolve_currency(obj.currency)


class TransactionListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list views."""

    payer = ParticipantMinimalSerializer(read_only=True)
    currency = serializers.SerializerMethodField()

    class Meta:
        model = Transaction
        fields = ['id', 'title', 'amount', 'currency', 'split_method', 'payer', 'group', 'date']
        read_only_fields = fields

    def get_currency(self, obj):
        return resolve_currency(obj.currency)


class SplitShareSerializer(serializers.Serializer):
    """Computed share from the split calculator (not persisted)."""

    participant = serializers.CharField(source='participant_id')
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    raw_input = serializers.DecimalField(max_digits=14, decimal_places=4, allow_null=True)
    clamped = serializers.BooleanField()


class SettlementSerializer(serializers.ModelSerializer):
    """Main serializer for settlements."""

    from_person = ParticipantMinimalSerializer(read_only=True)
    to_person = ParticipantMinimalSerializer(read_only=True)
    currency = serializers.SerializerMethodField()

    class Meta:
        model = Settlement
        fields = [
            'id',
            'from_person',
            'to_person',
            'amount',
            'currency',
            'date',
            'note',
            'is_full_settlement',
            'group',
            'subscription',
            'created_at',
        ]
        read_only_fields = fields

    def get_currency(self, obj):
        return resolve_currency(obj.currency)


class CurrencySerializer(serializers.Serializer):
    """Currency metadata for pickers and amount formatting."""

    code = serializers.CharField()
    symbol = serializers.CharField()
    name = serializers.CharField()
    flag = serializers.CharField()
    decimal_places = serializers.IntegerField()


class MemberBalanceSerializer(serializers.Serializer):
    """Balance with one member of a group or subscription."""

    participant = serializers.CharField(source='participant_id')
    display_name = serializers.CharField()
    balance = CurrencyBalanceField()
    total_paid = CurrencyBalanceField()


class PersonBalanceSerializer(serializers.Serializer):
    participant = ParticipantMinimalSerializer()
    balance = CurrencyBalanceField()
    is_settled = serializers.BooleanField(source='balance.is_settled')


class HomeSummarySerializer(serializers.Serializer):
    """Home screen totals; buckets are never netted across currencies."""

    you_owe = CurrencyBalanceField()
    owed_to_you = CurrencyBalanceField()
    people = PersonBalanceSerializer(many=True)
