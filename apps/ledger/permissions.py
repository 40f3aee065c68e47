"""
Custom permission classes for ledger app.

Querysets already restrict what a viewer can see; these classes guard the
object-level actions.

Usage:
    class SettlementViewSet(ViewerMixin, viewsets.GenericViewSet):
        permission_classes = [IsAuthenticated, IsSettlementParty]
"""

from rest_framework.permissions import BasePermission

from apps.ledger.models import Transaction


class IsTransactionParticipant(BasePermission):
    """
    Permission to access a transaction.

    Allows if the requesting viewer paid for it or owes a share of it.
    """

    message = 'You are not part of this transaction.'

    def has_object_permission(self, request, view, obj):
        return Transaction.objects.involving(view.viewer).filter(id=obj.id).exists()


class IsSettlementParty(BasePermission):
    """
    Permission to access a settlement.

    Allows if the requesting viewer sent or received the payment.
    """

    message = 'You are not a party to this settlement.'

    def has_object_permission(self, request, view, obj):
        return view.viewer.id in (obj.from_person_id, obj.to_person_id)
