from django.http import HttpResponse
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema

from apps.ledger.engine import LedgerError
from apps.ledger.engine.money import format_amount
from apps.ledger.serializers import SettlementSerializer
from apps.people.mixins import ViewerMixin
from apps.people.services import ParticipantNotFoundError
from .models import Subscription
from .serializers import (
    MonthlyTotalsSerializer,
    PaymentCreateSerializer,
    SubscriptionBalancesSerializer,
    SubscriptionCreateSerializer,
    SubscriptionFilterSerializer,
    SubscriptionListSerializer,
    SubscriptionPaymentSerializer,
    SubscriptionSerializer,
    SubscriptionSettleSerializer,
    SubscriptionUpdateSerializer,
)
from .services import (
    create_subscription,
    delete_subscription,
    export_payment_history,
    get_member_balances,
    get_monthly_totals,
    get_subscription,
    get_user_balance,
    get_user_share,
    list_payments,
    list_subscriptions,
    record_payment,
    settle_member,
    update_subscription,
    # Exceptions
    InsufficientPermissionsError,
    NotSubscriberError,
    SubscriptionNotFoundError,
    SubscriptionNotSharedError,
)


class SubscriptionPagination(PageNumberPagination):
    """Custom pagination for subscriptions and payments."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class SubscriptionViewSet(ViewerMixin, viewsets.ModelViewSet):
    """
    ViewSet for recurring (optionally shared) subscriptions.

    All business logic is handled by services.
    Views are thin HTTP handlers only.

    list: Subscriptions the viewer created or shares
    create: Create a subscription
    retrieve: Get a subscription
    partial_update: Edit a subscription (creator only)
    destroy: Delete a subscription with its payments (creator only)
    payments: List (GET) or record (POST) billing payments
    export_payments: Download the payment history as CSV
    balances: Equal-share balances with each subscriber
    settle: Settle the subscription balance with one subscriber
    summary: Monthly cost across active subscriptions
    """

    queryset = Subscription.objects.all()
    serializer_class = SubscriptionSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = SubscriptionPagination
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        if self.is_schema_request():
            return Subscription.objects.none()

        include_inactive = True
        if self.action == 'list':
            filter_serializer = SubscriptionFilterSerializer(data=self.request.query_params)
            filter_serializer.is_valid(raise_exception=True)
            include_inactive = filter_serializer.validated_data['include_inactive']

        return list_subscriptions(viewer=self.viewer, include_inactive=include_inactive)

    def get_serializer_class(self):
        if self.action == 'list':
            return SubscriptionListSerializer
        elif self.action == 'create':
            return SubscriptionCreateSerializer
        elif self.action == 'partial_update':
            return SubscriptionUpdateSerializer
        return SubscriptionSerializer

    def create(self, request, *args, **kwargs):
        """Create a subscription."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            subscription = create_subscription(
                created_by=self.viewer,
                name=data['name'],
                amount=data['amount'],
                currency=data.get('currency'),
                cycle=data['cycle'],
                custom_cycle_days=data.get('custom_cycle_days'),
                is_shared=data['is_shared'],
                subscriber_ids=data['subscribers'],
                note=data['note'],
            )
        except ParticipantNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

        return Response(SubscriptionSerializer(subscription).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        subscriber_ids = data.pop('subscribers', None)

        try:
            subscription = update_subscription(
                subscription_id=self.kwargs['pk'],
                viewer=self.viewer,
                subscriber_ids=subscriber_ids,
                **data
            )
        except (SubscriptionNotFoundError, ParticipantNotFoundError) as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except InsufficientPermissionsError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        return Response(SubscriptionSerializer(subscription).data)

    def destroy(self, request, *args, **kwargs):
        try:
            delete_subscription(subscription_id=self.kwargs['pk'], viewer=self.viewer)
            return Response(status=status.HTTP_204_NO_CONTENT)
        except SubscriptionNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except InsufficientPermissionsError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

    @extend_schema(
        request=PaymentCreateSerializer,
        responses={200: SubscriptionPaymentSerializer(many=True), 201: SubscriptionPaymentSerializer}
    )
    @action(detail=True, methods=['get', 'post'])
    def payments(self, request, pk=None):
        """List or record billing payments."""
        if request.method == 'POST':
            return self._record_payment(request, pk)

        try:
            payments = list_payments(subscription_id=pk, viewer=self.viewer)
        except SubscriptionNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotSubscriberError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        page = self.paginate_queryset(payments)
        if page is not None:
            serializer = SubscriptionPaymentSerializer(page, many=True)
            return self.get_paginated_response(serializer.data)

        return Response(SubscriptionPaymentSerializer(payments, many=True).data)

    def _record_payment(self, request, pk):
        serializer = PaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            payment = record_payment(
                subscription_id=pk,
                viewer=self.viewer,
                payer_id=data.get('payer'),
                amount=data.get('amount'),
                currency=data.get('currency'),
                date=data.get('date'),
                note=data['note'],
            )
        except SubscriptionNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotSubscriberError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        return Response(SubscriptionPaymentSerializer(payment).data, status=status.HTTP_201_CREATED)

    @extend_schema(responses={(200, 'text/csv'): OpenApiTypes.STR})
    @action(detail=True, methods=['get'], url_path='payments/export', url_name='payments-export')
    def export_payments(self, request, pk=None):
        """Payment history as a CSV download."""
        try:
            content = export_payment_history(subscription_id=pk, viewer=self.viewer)
        except SubscriptionNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotSubscriberError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        response = HttpResponse(content, content_type='text/csv')
        response['Content-Disposition'] = f'attachment; filename="payments-{pk}.csv"'
        return response

    @extend_schema(responses={200: SubscriptionBalancesSerializer})
    @action(detail=True, methods=['get'])
    def balances(self, request, pk=None):
        """The viewer's share and balance plus each subscriber's balance."""
        try:
            subscription = get_subscription(subscription_id=pk, viewer=self.viewer)
            members = get_member_balances(subscription_id=pk, viewer=self.viewer)
        except SubscriptionNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotSubscriberError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except SubscriptionNotSharedError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        data = {
            'your_share': get_user_share(subscription=subscription, viewer=self.viewer),
            'your_balance': get_user_balance(subscription_id=pk, viewer=self.viewer),
            'members': members,
        }
        return Response(SubscriptionBalancesSerializer(data).data)

    @extend_schema(request=SubscriptionSettleSerializer, responses={201: SettlementSerializer})
    @action(detail=True, methods=['post'])
    def settle(self, request, pk=None):
        """Settle the subscription balance with one subscriber."""
        serializer = SubscriptionSettleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            settlement, draft = settle_member(
                subscription_id=pk,
                viewer=self.viewer,
                member_id=data['member'],
                amount=data.get('amount'),
                currency=data.get('currency'),
                note=data['note'],
                date=data.get('date'),
                strict=data['strict'],
            )
        except SubscriptionNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotSubscriberError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except (SubscriptionNotSharedError, LedgerError) as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        response_data = dict(SettlementSerializer(settlement).data)
        if draft.capped:
            response_data['notice'] = (
                f"Amount capped to the outstanding balance of "
                f"{format_amount(draft.amount, draft.currency_code)}"
            )
        return Response(response_data, status=status.HTTP_201_CREATED)

    @extend_schema(responses={200: MonthlyTotalsSerializer})
    @action(detail=False, methods=['get'])
    def summary(self, request):
        """Monthly cost of active subscriptions, in full and the viewer's share."""
        total, share = get_monthly_totals(viewer=self.viewer)
        return Response(MonthlyTotalsSerializer({'total': total, 'your_share': share}).data)
