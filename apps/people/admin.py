# ==========================================
# apps/people/admin.py
# ==========================================

from django.contrib import admin
from apps.people.models import Participant, Group


@admin.register(Participant)
class ParticipantAdmin(admin.ModelAdmin):
    """Admin interface for Participants."""

    list_display = ['display_name', 'user', 'created_by', 'is_archived', 'created_at']
    list_filter = ['is_archived', 'created_at']
    search_fields = ['display_name', 'user__username', 'user__email']
    readonly_fields = ['created_at', 'updated_at']
    ordering = ['display_name']

    fieldsets = (
        ('Basic Information', {
            'fields': ('display_name', 'user', 'created_by', 'is_archived')
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def get_queryset(self, request):
        """Optimize query."""
        qs = super().get_queryset(request)
        return qs.select_related('user', 'created_by')


@admin.register(Group)
class GroupAdmin(admin.ModelAdmin):
    """Admin interface for Groups."""

    list_display = ['name', 'created_by', 'member_count', 'created_at']
    list_filter = ['created_at']
    search_fields = ['name', 'description', 'created_by__display_name']
    readonly_fields = ['created_at', 'updated_at']
    filter_horizontal = ['members']
    date_hierarchy = 'created_at'
    ordering = ['-created_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('name', 'description', 'created_by')
        }),
        ('Members', {
            'fields': ('members',)
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def member_count(self, obj):
        """Show number of members."""
        return obj.members.count()
    member_count.short_description = 'Members'

    def get_queryset(self, request):
        """Optimize query."""
        qs = super().get_queryset(request)
        return qs.select_related('created_by')
