from django.urls import path
from . import views

app_name = 'cart'

urlpatterns = [
    # GET    /api/cart/                           - List cart
    # POST   /api/cart/add/                       - Add product
    # PUT    /api/cart/update/                    - Set quantity
    # DELETE /api/cart/remove/                    - Remove product
    # DELETE /api/cart/clear/                     - Empty cart
    # GET    /api/cart/similar-groups/            - Matching public groups
    # GET    /api/cart/optimization-suggestions/  - Coverage strategies
    path('', views.cart_detail, name='cart-detail'),
    path('add/', views.cart_add, name='cart-add'),
    path('update/', views.cart_update, name='cart-update'),
    path('remove/', views.cart_remove, name='cart-remove'),
    path('clear/', views.cart_clear, name='cart-clear'),
    path('similar-groups/', views.similar_groups, name='similar-groups'),
    path('optimization-suggestions/', views.optimization_suggestions, name='optimization-suggestions'),
]
