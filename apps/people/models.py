# ==========================================
# apps/people/models.py
# ==========================================

from django.conf import settings
from django.db import models
from django.db.models import Q
import uuid


class ParticipantQuerySet(models.QuerySet):

    def visible_to(self, viewer):
        """Participants the viewer may reference: themself, their contacts and group co-members."""
        return self.filter(
            Q(id=viewer.id) |
            Q(created_by=viewer) |
            Q(ledger_groups__members=viewer)
        ).distinct()

    def active(self):
        return self.filter(is_archived=False)


class Participant(models.Model):
    """
    A person who can pay for or owe a share of an expense.

    Participants linked to an auth user are "viewers": the ledger is always
    computed from some viewer's point of view. Unlinked participants are
    contacts created by a viewer.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    display_name = models.CharField(max_length=200)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='participant'
    )
    created_by = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='contacts'
    )
    is_archived = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ParticipantQuerySet.as_manager()

    class Meta:
        db_table = 'participants'
        indexes = [
            models.Index(fields=['created_by', 'is_archived']),
        ]
        ordering = ['display_name', 'id']

    def __str__(self):
        return self.display_name


class Group(models.Model):
    """A set of participants sharing expenses."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    created_by = models.ForeignKey(
        Participant,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_groups'
    )
    members = models.ManyToManyField(Participant, related_name='ledger_groups', blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'ledger_groups'
        ordering = ['-created_at']

    def __str__(self):
        return self.name

    def has_member(self, participant):
        return self.members.filter(id=participant.id).exists()
