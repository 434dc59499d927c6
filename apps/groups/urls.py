from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'groups'

# Router for ViewSets
router = DefaultRouter()
router.register(r'', views.GroupViewSet, basename='group')

urlpatterns = [
    # Group ViewSet routes
    # GET    /api/groups/              - List own groups and participations
    # POST   /api/groups/              - Create group
    # GET    /api/groups/{id}/         - Get group details
    # PUT    /api/groups/{id}/         - Update group (owner)
    # PATCH  /api/groups/{id}/         - Partial update (owner)
    # DELETE /api/groups/{id}/         - Delete group (owner)

    # Collection actions
    # POST   /api/groups/from-cart/             - Create group from cart
    # GET    /api/groups/public/                - Browse public groups
    # GET    /api/groups/shared/{token}/        - Open a share link

    # Custom group actions
    # POST   /api/groups/{id}/items/                    - Add item (owner)
    # PUT    /api/groups/{id}/items/{product_id}/       - Set quantity (owner)
    # DELETE /api/groups/{id}/items/{product_id}/       - Remove item (owner)
    # GET    /api/groups/{id}/totals/                   - Value and savings
    # POST   /api/groups/{id}/join/                     - Request to join
    # GET    /api/groups/{id}/participation/            - Own standing
    # GET    /api/groups/{id}/pending/                  - Pending requests (owner)
    # GET    /api/groups/{id}/approved/                 - Approved members
    # POST   /api/groups/{id}/approve/                  - Approve request (owner)
    # POST   /api/groups/{id}/reject/                   - Reject request (owner)
    # DELETE /api/groups/{id}/remove_participant/       - Remove member
    # POST   /api/groups/{id}/add_participant/          - Add member (owner)
    # GET    /api/groups/{id}/eligibility/              - Payment readiness
    # GET    /api/groups/{id}/payments/                 - Payment status
    # POST   /api/groups/{id}/payments/                 - Record payment

    # Include router URLs
    path('', include(router.urls)),
]
