from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema

from apps.ledger.engine import CURRENCIES, LedgerError
from apps.ledger.engine.money import format_amount
from apps.people.mixins import ViewerMixin
from apps.people.models import Participant
from apps.people.services import resolve_viewer
from .models import Settlement, Transaction
from .permissions import IsSettlementParty, IsTransactionParticipant
from .serializers import (
    CurrencySerializer,
    HomeSummarySerializer,
    SettleAllSerializer,
    SettlementCreateSerializer,
    SettlementFilterSerializer,
    SettlementSerializer,
    SplitInputSerializer,
    SplitShareSerializer,
    TransactionCreateSerializer,
    TransactionFilterSerializer,
    TransactionListSerializer,
    TransactionSerializer,
    TransactionUpdateSerializer,
)
from .services import (
    create_settlement,
    create_transaction,
    delete_settlement,
    delete_transaction,
    get_home_summary,
    get_transaction,
    list_settlements,
    preview_splits,
    settle_all,
    update_transaction,
    # Exceptions
    NotParticipantError,
    ParticipantNotFoundError,
    SettlementNotFoundError,
    TransactionNotFoundError,
)


class LedgerPagination(PageNumberPagination):
    """Custom pagination for ledger lists."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class TransactionViewSet(ViewerMixin, viewsets.ModelViewSet):
    """
    ViewSet for Transaction operations.

    All business logic is handled by services.
    Views are thin HTTP handlers only.

    list: Get the viewer's transactions (filterable by group/date)
    create: Create a transaction and compute its splits
    retrieve: Get a specific transaction with payers and splits
    partial_update: Edit title/amount/date/note (amount edits rescale splits)
    destroy: Delete a transaction
    """

    queryset = Transaction.objects.all()
    serializer_class = TransactionSerializer
    permission_classes = [IsAuthenticated, IsTransactionParticipant]
    pagination_class = LedgerPagination
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        """Filter transactions using input serializer validation."""
        if self.is_schema_request():
            return Transaction.objects.none()

        filter_serializer = TransactionFilterSerializer(data=self.request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        params = filter_serializer.validated_data

        queryset = (
            Transaction.objects
            .involving(self.viewer)
            .select_related('payer', 'created_by', 'group')
            .prefetch_related('payers__paid_by', 'splits__owed_by')
        )

        if params.get('group'):
            queryset = queryset.filter(group_id=params['group'])
        if 'date_from' in params:
            queryset = queryset.filter(date__gte=params['date_from'])
        if 'date_to' in params:
            queryset = queryset.filter(date__lte=params['date_to'])

        return queryset.order_by('-date', '-created_at')

    def get_serializer_class(self):
        """Use different serializers for different actions."""
        if self.action == 'list':
            return TransactionListSerializer
        elif self.action == 'create':
            return TransactionCreateSerializer
        elif self.action == 'partial_update':
            return TransactionUpdateSerializer
        return TransactionSerializer

    def create(self, request, *args, **kwargs):
        """Create a transaction with computed splits."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            txn = create_transaction(
                created_by=self.viewer,
                title=data['title'],
                amount=data['amount'],
                participant_ids=data['participants'],
                currency=data.get('currency'),
                date=data.get('date'),
                split_method=data['split_method'],
                raw_inputs=data['raw_inputs'],
                payer_id=data.get('payer'),
                payers=[(p['participant'], p['amount']) for p in data.get('payers', [])],
                group_id=data.get('group'),
                note=data['note'],
            )
        except LedgerError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except ParticipantNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotParticipantError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        txn = get_transaction(transaction_id=txn.id, viewer=self.viewer)
        return Response(TransactionSerializer(txn).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        """Edit a transaction."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        payer_id = data.pop('payer', None)
        payers = [(p['participant'], p['amount']) for p in data.pop('payers', [])]

        try:
            update_transaction(
                transaction_id=self.kwargs['pk'],
                viewer=self.viewer,
                payer_id=payer_id,
                payers=payers,
                **data
            )
            txn = get_transaction(transaction_id=self.kwargs['pk'], viewer=self.viewer)
        except (TransactionNotFoundError, ParticipantNotFoundError) as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotParticipantError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except LedgerError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(TransactionSerializer(txn).data)

    def destroy(self, request, *args, **kwargs):
        """Delete a transaction."""
        try:
            delete_transaction(transaction_id=self.kwargs['pk'], viewer=self.viewer)
            return Response(status=status.HTTP_204_NO_CONTENT)
        except TransactionNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotParticipantError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)


class SettlementViewSet(
    ViewerMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet
):
    """
    ViewSet for Settlement operations.

    list: Get the viewer's settlements (filterable by person/group)
    create: Record a settlement (capped to the outstanding balance)
    retrieve: Get a specific settlement
    destroy: Delete a settlement
    settle_all: Fully settle every outstanding balance at once
    """

    queryset = Settlement.objects.all()
    serializer_class = SettlementSerializer
    permission_classes = [IsAuthenticated, IsSettlementParty]
    pagination_class = LedgerPagination

    def get_queryset(self):
        if self.is_schema_request():
            return Settlement.objects.none()

        filter_serializer = SettlementFilterSerializer(data=self.request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        params = filter_serializer.validated_data

        return list_settlements(
            viewer=self.viewer,
            person_id=params.get('person'),
            group_id=params.get('group'),
        )

    @extend_schema(request=SettlementCreateSerializer, responses={201: SettlementSerializer})
    def create(self, request, *args, **kwargs):
        """
        Record a settlement.

        Amounts above the outstanding balance are capped to it; the response
        then carries a ``notice``. Pass ``strict: true`` to get a 400 instead.
        """
        serializer = SettlementCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            settlement, draft = create_settlement(
                viewer=self.viewer,
                other_id=data['counterpart'],
                amount=data.get('amount'),
                currency=data.get('currency'),
                note=data['note'],
                date=data.get('date'),
                group_id=data.get('group'),
                strict=data['strict'],
            )
        except ParticipantNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotParticipantError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except LedgerError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        response_data = dict(SettlementSerializer(settlement).data)
        if draft.capped:
            response_data['notice'] = (
                f"Amount capped to the outstanding balance of "
                f"{format_amount(draft.amount, draft.currency_code)}"
            )
        return Response(response_data, status=status.HTTP_201_CREATED)

    def destroy(self, request, pk=None):
        """Delete a settlement."""
        try:
            delete_settlement(settlement_id=pk, viewer=self.viewer)
            return Response(status=status.HTTP_204_NO_CONTENT)
        except SettlementNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotParticipantError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

    @extend_schema(request=SettleAllSerializer, responses={201: SettlementSerializer(many=True)})
    @action(detail=False, methods=['post'])
    def settle_all(self, request):
        """Settle every outstanding balance (optionally within one group)."""
        serializer = SettleAllSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            settlements = settle_all(
                viewer=self.viewer,
                group_id=data.get('group'),
                note=data['note'],
                date=data.get('date'),
            )
        except NotParticipantError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        return Response(
            SettlementSerializer(settlements, many=True).data,
            status=status.HTTP_201_CREATED
        )


@extend_schema(
    request=SplitInputSerializer,
    responses={200: SplitShareSerializer(many=True)},
    description="Compute splits for a prospective transaction without saving it.",
    tags=['ledger'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def split_preview(request):
    """Live split preview for the transaction form."""
    serializer = SplitInputSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    try:
        shares = preview_splits(
            amount=data['amount'],
            split_method=data['split_method'],
            participant_ids=[str(pid) for pid in data['participants']],
            raw_inputs=data['raw_inputs'],
            currency=data.get('currency'),
        )
    except LedgerError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response(SplitShareSerializer(shares, many=True).data)


@extend_schema(
    responses={200: HomeSummarySerializer},
    description="Totals the viewer owes and is owed, per currency, plus every person balance.",
    tags=['ledger'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def home_summary(request):
    """Home screen "you owe / owed to you" summary."""
    viewer = resolve_viewer(user=request.user)
    summary, balances = get_home_summary(viewer=viewer)

    people = Participant.objects.filter(id__in=list(balances)).order_by('display_name', 'id')
    serializer = HomeSummarySerializer({
        'you_owe': summary.you_owe,
        'owed_to_you': summary.owed_to_you,
        'people': [{'participant': p, 'balance': balances[p.id]} for p in people],
    })
    return Response(serializer.data)


@extend_schema(
    responses={200: CurrencySerializer(many=True)},
    description="Supported currencies with display metadata.",
    tags=['ledger'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def currency_list(request):
    return Response(CurrencySerializer(CURRENCIES, many=True).data)
