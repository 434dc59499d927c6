from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from .serializers import (
    AddToCartSerializer,
    CartItemSerializer,
    MatchResultSerializer,
    RemoveFromCartSerializer,
    StrategySerializer,
    UpdateCartItemSerializer,
)
from .services import (
    get_cart,
    add_to_cart,
    update_cart_item,
    remove_from_cart,
    clear_cart,
    find_similar_groups,
    get_optimization_suggestions,
    CartItemNotFoundError,
    InvalidQuantityError,
    ProductUnavailableError,
)


@extend_schema(
    responses={200: CartItemSerializer(many=True)},
    description="Get the current user's cart.",
    tags=['cart'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def cart_detail(request):
    """List cart items."""
    items = get_cart(user=request.user)
    serializer = CartItemSerializer(items, many=True)
    return Response(serializer.data)


@extend_schema(
    request=AddToCartSerializer,
    responses={201: CartItemSerializer},
    description="Add a product to the cart or top up its quantity.",
    tags=['cart'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cart_add(request):
    serializer = AddToCartSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        item = add_to_cart(
            user=request.user,
            product_id=serializer.validated_data['product_id'],
            quantity=serializer.validated_data['quantity']
        )
    except ProductUnavailableError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except InvalidQuantityError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response(CartItemSerializer(item).data, status=status.HTTP_201_CREATED)


@extend_schema(
    request=UpdateCartItemSerializer,
    responses={200: CartItemSerializer},
    description="Set the quantity of a cart line; zero or less removes it.",
    tags=['cart'],
)
@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def cart_update(request):
    serializer = UpdateCartItemSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        item = update_cart_item(
            user=request.user,
            product_id=serializer.validated_data['product_id'],
            quantity=serializer.validated_data['quantity']
        )
    except CartItemNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

    if item is None:
        return Response(status=status.HTTP_204_NO_CONTENT)
    return Response(CartItemSerializer(item).data)


@extend_schema(
    request=RemoveFromCartSerializer,
    responses={204: None},
    description="Remove a product from the cart.",
    tags=['cart'],
)
@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def cart_remove(request):
    serializer = RemoveFromCartSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    remove_from_cart(user=request.user, product_id=serializer.validated_data['product_id'])
    return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema(responses={204: None}, description="Empty the cart.", tags=['cart'])
@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def cart_clear(request):
    clear_cart(user=request.user)
    return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema(
    responses={200: MatchResultSerializer(many=True)},
    description="Public groups that share products with the cart.",
    tags=['cart'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def similar_groups(request):
    matches = find_similar_groups(user=request.user)
    return Response(MatchResultSerializer(matches, many=True).data)


@extend_schema(
    responses={200: StrategySerializer(many=True)},
    description="Ranked ways to buy the cart through one or more groups.",
    tags=['cart'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def optimization_suggestions(request):
    strategies = get_optimization_suggestions(user=request.user)
    return Response(StrategySerializer(strategies, many=True).data)
