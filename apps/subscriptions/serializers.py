from rest_framework import serializers

from apps.ledger.engine.money import CURRENCY_CHOICES
from apps.ledger.serializers import AmountField, CurrencyBalanceField, MemberBalanceSerializer
from apps.people.serializers import ParticipantMinimalSerializer
from .models import BillingCycle, Subscription, SubscriptionPayment


# =============================================================================
# Input Serializers
# =============================================================================

class SubscriptionCreateSerializer(serializers.Serializer):
    """
    Validate input for creating a subscription.

    Fields:
        name (str): Display name
        amount (Decimal): Amount per billing cycle
        currency (str): Optional; defaults to LEDGER_DEFAULT_CURRENCY
        cycle (str): weekly, monthly, yearly or custom
        custom_cycle_days (int): Required for custom cycles
        is_shared (bool): Split payments evenly among subscribers
        subscribers (list[UUID]): Other participants sharing the bill
    """

    name = serializers.CharField(max_length=200)
    amount = AmountField()
    currency = serializers.ChoiceField(choices=CURRENCY_CHOICES, required=False)
    cycle = serializers.ChoiceField(choices=BillingCycle.choices, required=False, default=BillingCycle.MONTHLY)
    custom_cycle_days = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    is_shared = serializers.BooleanField(required=False, default=False)
    subscribers = serializers.ListField(child=serializers.UUIDField(), required=False, default=list)
    note = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs.get('cycle') == BillingCycle.CUSTOM and not attrs.get('custom_cycle_days'):
            raise serializers.ValidationError({
                'custom_cycle_days': 'Custom billing cycles need a length in days'
            })
        if attrs.get('subscribers') and not attrs.get('is_shared'):
            raise serializers.ValidationError({
                'subscribers': 'Only shared subscriptions can have subscribers'
            })
        return attrs


class SubscriptionUpdateSerializer(serializers.Serializer):
    """Validate input for editing a subscription."""

    name = serializers.CharField(max_length=200, required=False)
    amount = AmountField(required=False)
    currency = serializers.ChoiceField(choices=CURRENCY_CHOICES, required=False)
    cycle = serializers.ChoiceField(choices=BillingCycle.choices, required=False)
    custom_cycle_days = serializers.IntegerField(min_value=1, required=False)
    is_shared = serializers.BooleanField(required=False)
    is_active = serializers.BooleanField(required=False)
    subscribers = serializers.ListField(child=serializers.UUIDField(), required=False)
    note = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if attrs.get('cycle') == BillingCycle.CUSTOM and not attrs.get('custom_cycle_days'):
            raise serializers.ValidationError({
                'custom_cycle_days': 'Custom billing cycles need a length in days'
            })
        return attrs


class SubscriptionFilterSerializer(serializers.Serializer):
    """
    Validate query parameters for subscription listing.

    Query Parameters:
        include_inactive (bool): Include paused subscriptions
    """

    include_inactive = serializers.BooleanField(required=False, default=True)


class PaymentCreateSerializer(serializers.Serializer):
    """Validate input for recording a payment; everything defaults from the subscription."""

    payer = serializers.UUIDField(required=False)
    amount = AmountField(required=False)
    currency = serializers.ChoiceField(choices=CURRENCY_CHOICES, required=False)
    date = serializers.DateField(required=False)
    note = serializers.CharField(required=False, allow_blank=True, default='')


class SubscriptionSettleSerializer(serializers.Serializer):
    """
    Validate input for settling with one subscriber.

    Fields:
        member (UUID): Subscriber the viewer is settling with
        amount (Decimal): Optional; omit to settle the full balance
        strict (bool): Reject amounts above the balance instead of capping
    """

    member = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    currency = serializers.ChoiceField(choices=CURRENCY_CHOICES, required=False)
    note = serializers.CharField(required=False, allow_blank=True, default='')
    date = serializers.DateField(required=False)
    strict = serializers.BooleanField(required=False, default=False)


# =============================================================================
# Output Serializers
# =============================================================================

class SubscriptionSerializer(serializers.ModelSerializer):
    """Main serializer for subscriptions."""

    created_by = ParticipantMinimalSerializer(read_only=True)
    subscribers = ParticipantMinimalSerializer(many=True, read_only=True)
    cycle_days = serializers.IntegerField(read_only=True)
    monthly_equivalent = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    member_count = serializers.SerializerMethodField()
    next_billing_date = serializers.DateField(read_only=True)

    class Meta:
        model = Subscription
        fields = [
            'id',
            'name',
            'amount',
            'currency',
            'cycle',
            'custom_cycle_days',
            'cycle_days',
            'monthly_equivalent',
            'next_billing_date',
            'is_shared',
            'is_active',
            'created_by',
            'subscribers',
            'member_count',
            'note',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_member_count(self, obj):
        return len(obj.member_ids())


class SubscriptionListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list views."""

    monthly_equivalent = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Subscription
        fields = ['id', 'name', 'amount', 'currency', 'cycle', 'monthly_equivalent', 'is_shared', 'is_active']
        read_only_fields = fields


class SubscriptionPaymentSerializer(serializers.ModelSerializer):
    payer = ParticipantMinimalSerializer(read_only=True)

    class Meta:
        model = SubscriptionPayment
        fields = ['id', 'payer', 'amount', 'currency', 'date', 'note', 'created_at']
        read_only_fields = fields


class SubscriptionBalancesSerializer(serializers.Serializer):
    """The viewer's position in a shared subscription plus each member's balance."""

    your_share = serializers.DecimalField(max_digits=12, decimal_places=2)
    your_balance = CurrencyBalanceField()
    members = MemberBalanceSerializer(many=True)


class MonthlyTotalsSerializer(serializers.Serializer):
    total = CurrencyBalanceField()
    your_share = CurrencyBalanceField()
