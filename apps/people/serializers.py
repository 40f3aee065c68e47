from rest_framework import serializers
from .models import Participant, Group


# =============================================================================
# Input Serializers
# =============================================================================

class ParticipantCreateSerializer(serializers.Serializer):
    """Validate input for creating a contact."""

    display_name = serializers.CharField(max_length=200)


class ParticipantUpdateSerializer(serializers.Serializer):
    """Validate input for editing a contact."""

    display_name = serializers.CharField(max_length=200, required=False)
    is_archived = serializers.BooleanField(required=False)


class ParticipantFilterSerializer(serializers.Serializer):
    """
    Validate query parameters for participant listing.

    Query Parameters:
        include_archived (bool): Include archived contacts
    """

    include_archived = serializers.BooleanField(required=False, default=False)


class GroupCreateSerializer(serializers.Serializer):
    """Validate input for creating a group."""

    name = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    members = serializers.ListField(child=serializers.UUIDField(), required=False, default=list)


class GroupUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200, required=False)
    description = serializers.CharField(required=False, allow_blank=True)


class GroupMembersSerializer(serializers.Serializer):
    """Validate input for adding members."""

    members = serializers.ListField(child=serializers.UUIDField(), min_length=1)


class RemoveMemberSerializer(serializers.Serializer):
    participant = serializers.UUIDField()


# =============================================================================
# Output Serializers
# =============================================================================

class ParticipantMinimalSerializer(serializers.ModelSerializer):
    """Minimal participant info for nested serialization."""

    class Meta:
        model = Participant
        fields = ['id', 'display_name']
        read_only_fields = fields


class ParticipantSerializer(serializers.ModelSerializer):
    """Main serializer for participants."""

    is_self = serializers.SerializerMethodField()
    is_linked = serializers.SerializerMethodField()

    class Meta:
        model = Participant
        fields = [
            'id',
            'display_name',
            'is_archived',
            'is_self',
            'is_linked',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_is_self(self, obj):
        """Whether this participant is the requesting viewer."""
        viewer = self.context.get('viewer')
        return viewer is not None and obj.id == viewer.id

    def get_is_linked(self, obj):
        return obj.user_id is not None


class GroupSerializer(serializers.ModelSerializer):
    """Main serializer for groups."""

    created_by = ParticipantMinimalSerializer(read_only=True)
    members = ParticipantMinimalSerializer(many=True, read_only=True)
    member_count = serializers.SerializerMethodField()

    class Meta:
        model = Group
        fields = [
            'id',
            'name',
            'description',
            'created_by',
            'members',
            'member_count',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_member_count(self, obj):
        return obj.members.count()


class GroupListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for list views."""

    member_count = serializers.SerializerMethodField()

    class Meta:
        model = Group
        fields = ['id', 'name', 'description', 'member_count', 'created_at']
        read_only_fields = fields

    def get_member_count(self, obj):
        return obj.members.count()
