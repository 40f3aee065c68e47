from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'subscriptions'

# Router for ViewSets
router = DefaultRouter()
router.register(r'', views.SubscriptionViewSet, basename='subscription')

urlpatterns = [
    # Subscription ViewSet routes
    # GET    /api/subscriptions/                 - List subscriptions
    # POST   /api/subscriptions/                 - Create subscription
    # GET    /api/subscriptions/summary/         - Monthly totals
    # GET    /api/subscriptions/{id}/            - Get subscription details
    # PATCH  /api/subscriptions/{id}/            - Edit subscription (creator only)
    # DELETE /api/subscriptions/{id}/            - Delete subscription (creator only)
    # GET    /api/subscriptions/{id}/payments/   - List payments
    # POST   /api/subscriptions/{id}/payments/   - Record payment
    # GET    /api/subscriptions/{id}/balances/   - Balances with each subscriber
    # POST   /api/subscriptions/{id}/settle/     - Settle with one subscriber

    # Include router URLs
    path('', include(router.urls)),
]
