from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'catalog'

router = DefaultRouter()
router.register(r'products', views.ProductViewSet, basename='product')

urlpatterns = [
    # GET    /api/catalog/products/                    - List active products
    # GET    /api/catalog/products/{id}/               - Product with tiers
    # GET    /api/catalog/products/{id}/quote/?quantity=N - Price quote
    path('', include(router.urls)),
]
