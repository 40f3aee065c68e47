from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'people'

# Router for ViewSets
router = DefaultRouter()
router.register(r'participants', views.ParticipantViewSet, basename='participant')
router.register(r'groups', views.GroupViewSet, basename='group')

urlpatterns = [
    # Participant ViewSet routes
    # GET    /api/people/participants/                      - List visible participants
    # POST   /api/people/participants/                      - Add contact
    # GET    /api/people/participants/{id}/                 - Get participant
    # PATCH  /api/people/participants/{id}/                 - Rename / (un)archive contact
    # DELETE /api/people/participants/{id}/                 - Archive contact
    # GET    /api/people/participants/me/                   - Viewer's own participant
    # GET    /api/people/participants/{id}/balance/         - Balance with participant
    # GET    /api/people/participants/{id}/transactions/    - Shared transactions

    # Group ViewSet routes
    # GET    /api/people/groups/                            - List viewer's groups
    # POST   /api/people/groups/                            - Create group
    # GET    /api/people/groups/{id}/                       - Get group details
    # PATCH  /api/people/groups/{id}/                       - Update group (members)
    # DELETE /api/people/groups/{id}/                       - Delete group (creator)
    # GET    /api/people/groups/{id}/balances/              - Per-member balances
    # POST   /api/people/groups/{id}/add_members/           - Add members
    # POST   /api/people/groups/{id}/remove_member/         - Remove member

    # Include router URLs
    path('', include(router.urls)),
]
