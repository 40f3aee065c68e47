from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'ledger'

# Router for ViewSets
router = DefaultRouter()
router.register(r'transactions', views.TransactionViewSet, basename='transaction')
router.register(r'settlements', views.SettlementViewSet, basename='settlement')

urlpatterns = [
    # Transaction ViewSet routes
    # GET    /api/ledger/transactions/           - List transactions
    # POST   /api/ledger/transactions/           - Create transaction (with splits)
    # GET    /api/ledger/transactions/{id}/      - Get transaction details
    # PATCH  /api/ledger/transactions/{id}/      - Edit (amount edits rescale splits)
    # DELETE /api/ledger/transactions/{id}/      - Delete transaction

    # Settlement ViewSet routes
    # GET    /api/ledger/settlements/            - List settlements
    # POST   /api/ledger/settlements/            - Record settlement
    # GET    /api/ledger/settlements/{id}/       - Get settlement
    # DELETE /api/ledger/settlements/{id}/       - Delete settlement
    # POST   /api/ledger/settlements/settle_all/ - Settle every balance

    # Additional endpoints
    path('splits/preview/', views.split_preview, name='split-preview'),
    path('summary/', views.home_summary, name='summary'),
    path('currencies/', views.currency_list, name='currency-list'),

    # Include router URLs
    path('', include(router.urls)),
]
