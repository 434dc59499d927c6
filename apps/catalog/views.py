from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema

from .serializers import (
    ProductSerializer,
    ProductListSerializer,
    QuoteQuerySerializer,
    PriceQuoteSerializer,
)
from .services import (
    get_active_products,
    resolve_price,
)


class ProductPagination(PageNumberPagination):
    """Custom pagination for products."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class ProductViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Read-only catalog.

    Catalog management happens in the admin; the API only exposes
    products, their tier tables and price quotes.

    list: Get active products (optional ?search=)
    retrieve: Get a product with its discount tiers
    quote: Resolve the group price for a quantity
    """

    serializer_class = ProductSerializer
    permission_classes = [AllowAny]
    pagination_class = ProductPagination

    def get_queryset(self):
        return get_active_products(search=self.request.query_params.get('search'))

    def get_serializer_class(self):
        if self.action == 'list':
            return ProductListSerializer
        return ProductSerializer

    @extend_schema(parameters=[QuoteQuerySerializer], responses={200: PriceQuoteSerializer})
    @action(detail=True, methods=['get'])
    def quote(self, request, pk=None):
        """Resolve the group price for ?quantity=N."""
        query = QuoteQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        product = self.get_object()
        quote = resolve_price(product.get_pricing(), query.validated_data['quantity'])
        return Response(PriceQuoteSerializer(quote).data)
