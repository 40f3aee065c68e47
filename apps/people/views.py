from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema

from .mixins import ViewerMixin
from .models import Group, Participant
from .serializers import (
    GroupCreateSerializer,
    GroupListSerializer,
    GroupMembersSerializer,
    GroupSerializer,
    GroupUpdateSerializer,
    ParticipantCreateSerializer,
    ParticipantFilterSerializer,
    ParticipantSerializer,
    ParticipantUpdateSerializer,
    RemoveMemberSerializer,
)

from apps.people.services import (
    add_members,
    archive_participant,
    create_group,
    create_participant,
    delete_group,
    get_group,
    list_participants,
    remove_member,
    update_group,
    update_participant,
    # Exceptions
    GroupNotFoundError,
    InsufficientPermissionsError,
    NotGroupMemberError,
    ParticipantNotFoundError,
)
from apps.ledger.serializers import (
    CurrencyBalanceField,
    MemberBalanceSerializer,
    TransactionListSerializer,
)
from apps.ledger.services import (
    get_group_member_balances,
    get_mutual_transactions,
    get_person_balance,
)
from apps.ledger.services import ParticipantNotFoundError as CounterpartNotFoundError


class PeoplePagination(PageNumberPagination):
    """Custom pagination for people and groups."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class BalanceSerializer(ParticipantSerializer):
    """Participant plus the viewer's balance with them."""

    balance = CurrencyBalanceField()

    class Meta(ParticipantSerializer.Meta):
        fields = ParticipantSerializer.Meta.fields + ['balance']
        read_only_fields = fields


class ParticipantViewSet(ViewerMixin, viewsets.ModelViewSet):
    """
    ViewSet for participants (the viewer and their contacts).

    list: Get participants visible to the viewer
    create: Add a contact
    retrieve: Get a participant
    partial_update: Rename or (un)archive a contact
    destroy: Archive a contact (kept for past transactions)
    me: The viewer's own participant
    balance: The viewer's balance with a participant
    transactions: Transactions shared with a participant
    """

    queryset = Participant.objects.all()
    serializer_class = ParticipantSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = PeoplePagination
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        if self.is_schema_request():
            return Participant.objects.none()

        include_archived = True
        if self.action == 'list':
            filter_serializer = ParticipantFilterSerializer(data=self.request.query_params)
            filter_serializer.is_valid(raise_exception=True)
            include_archived = filter_serializer.validated_data['include_archived']

        return list_participants(viewer=self.viewer, include_archived=include_archived)

    def get_serializer_context(self):
        context = super().get_serializer_context()
        if not self.is_schema_request():
            context['viewer'] = self.viewer
        return context

    def get_serializer_class(self):
        if self.action == 'create':
            return ParticipantCreateSerializer
        elif self.action == 'partial_update':
            return ParticipantUpdateSerializer
        return ParticipantSerializer

    def create(self, request, *args, **kwargs):
        """Add a contact."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        participant = create_participant(
            viewer=self.viewer,
            display_name=serializer.validated_data['display_name']
        )

        output_serializer = ParticipantSerializer(participant, context=self.get_serializer_context())
        return Response(output_serializer.data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            participant = update_participant(
                participant_id=self.kwargs['pk'],
                viewer=self.viewer,
                **serializer.validated_data
            )
        except ParticipantNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except InsufficientPermissionsError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        output_serializer = ParticipantSerializer(participant, context=self.get_serializer_context())
        return Response(output_serializer.data)

    def destroy(self, request, *args, **kwargs):
        """Archive a contact."""
        try:
            archive_participant(participant_id=self.kwargs['pk'], viewer=self.viewer)
            return Response(status=status.HTTP_204_NO_CONTENT)
        except ParticipantNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except InsufficientPermissionsError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

    @action(detail=False, methods=['get'])
    def me(self, request):
        """Get the viewer's own participant."""
        serializer = ParticipantSerializer(self.viewer, context=self.get_serializer_context())
        return Response(serializer.data)

    @extend_schema(responses={200: BalanceSerializer})
    @action(detail=True, methods=['get'])
    def balance(self, request, pk=None):
        """Balance between the viewer and this participant, per currency."""
        participant = self.get_object()

        try:
            balance = get_person_balance(viewer=self.viewer, person_id=participant.id)
        except CounterpartNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

        participant.balance = balance
        serializer = BalanceSerializer(participant, context=self.get_serializer_context())
        return Response(serializer.data)

    @extend_schema(responses={200: TransactionListSerializer(many=True)})
    @action(detail=True, methods=['get'])
    def transactions(self, request, pk=None):
        """Transactions shared with this participant, newest first."""
        participant = self.get_object()

        try:
            transactions = get_mutual_transactions(viewer=self.viewer, person_id=participant.id)
        except CounterpartNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

        page = self.paginate_queryset(transactions)
        if page is not None:
            serializer = TransactionListSerializer(page, many=True)
            return self.get_paginated_response(serializer.data)

        serializer = TransactionListSerializer(transactions, many=True)
        return Response(serializer.data)


class GroupViewSet(ViewerMixin, viewsets.ModelViewSet):
    """
    ViewSet for Group CRUD operations.

    All business logic is handled by services.
    Views are thin HTTP handlers only.

    list: Get all groups (viewer is member of)
    create: Create a new group
    retrieve: Get a specific group
    partial_update: Update name/description (members only)
    destroy: Delete a group (creator only)
    balances: Viewer's balance with each member within the group
    add_members: Add participants to the group
    remove_member: Remove a member (self, or anyone for the creator)
    """

    queryset = Group.objects.all()
    serializer_class = GroupSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = PeoplePagination
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        """Return only groups where the viewer is a member."""
        if self.is_schema_request():
            return Group.objects.none()

        return (
            Group.objects
            .filter(members=self.viewer)
            .select_related('created_by')
            .prefetch_related('members')
            .distinct()
        )

    def get_serializer_class(self):
        """Use different serializers for different actions."""
        if self.action == 'list':
            return GroupListSerializer
        elif self.action == 'create':
            return GroupCreateSerializer
        elif self.action == 'partial_update':
            return GroupUpdateSerializer
        return GroupSerializer

    def create(self, request, *args, **kwargs):
        """Create a new group."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            group = create_group(
                name=serializer.validated_data['name'],
                created_by=self.viewer,
                description=serializer.validated_data['description'],
                member_ids=serializer.validated_data['members']
            )
        except ParticipantNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

        output_serializer = GroupSerializer(group)
        return Response(output_serializer.data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            group = update_group(
                group_id=self.kwargs['pk'],
                participant=self.viewer,
                **serializer.validated_data
            )
        except GroupNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotGroupMemberError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        return Response(GroupSerializer(group).data)

    def destroy(self, request, *args, **kwargs):
        """Delete a group."""
        try:
            delete_group(group_id=self.kwargs['pk'], participant=self.viewer)
            return Response(status=status.HTTP_204_NO_CONTENT)
        except GroupNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except InsufficientPermissionsError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

    @extend_schema(responses={200: MemberBalanceSerializer(many=True)})
    @action(detail=True, methods=['get'])
    def balances(self, request, pk=None):
        """Viewer's balance with every other member, from this group's expenses only."""
        try:
            group = get_group(group_id=pk, participant=self.viewer)
        except GroupNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotGroupMemberError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        summaries = get_group_member_balances(viewer=self.viewer, group=group)
        return Response(MemberBalanceSerializer(summaries, many=True).data)

    @extend_schema(request=GroupMembersSerializer, responses={200: GroupSerializer})
    @action(detail=True, methods=['post'])
    def add_members(self, request, pk=None):
        """Add participants to the group."""
        serializer = GroupMembersSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            group = add_members(
                group_id=pk,
                participant=self.viewer,
                member_ids=serializer.validated_data['members']
            )
        except (GroupNotFoundError, ParticipantNotFoundError) as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotGroupMemberError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        return Response(GroupSerializer(group).data)

    @extend_schema(request=RemoveMemberSerializer, responses={200: GroupSerializer})
    @action(detail=True, methods=['post'])
    def remove_member(self, request, pk=None):
        """Remove a member from the group."""
        serializer = RemoveMemberSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            group = remove_member(
                group_id=pk,
                participant=self.viewer,
                member_id=serializer.validated_data['participant']
            )
        except GroupNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except InsufficientPermissionsError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except NotGroupMemberError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(GroupSerializer(group).data)
