from django.db.models import Q
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema

from .models import Group, ParticipantStatus
from .serializers import (
    GroupSerializer,
    GroupCreateSerializer,
    GroupFromCartSerializer,
    GroupUpdateSerializer,
    GroupListSerializer,
    GroupItemSerializer,
    GroupItemInputSerializer,
    GroupParticipantSerializer,
    GroupPaymentSerializer,
    GroupTotalsSerializer,
    JoinGroupSerializer,
    ParticipantActionSerializer,
    ParticipationStatusSerializer,
    PaymentEligibilitySerializer,
    PaymentStatusSerializer,
    RecordPaymentSerializer,
    SetQuantitySerializer,
)
from .permissions import IsGroupMember

from apps.groups.services import (
    create_group,
    create_group_from_cart,
    get_group_by_id,
    get_group_by_share_token,
    list_public_groups,
    update_group,
    delete_group,
    add_item,
    set_quantity,
    remove_item,
    get_group_totals,
    record_payment,
    get_payment_status,
    request_join,
    fetch_group,
    approve_participant,
    reject_participant,
    remove_participant,
    add_participant_directly,
    get_participation_status,
    get_pending_participants,
    get_approved_participants,
    get_payment_eligibility,
    # Exceptions
    GroupsServiceError,
    GroupNotFoundError,
    UserNotFoundError,
    InsufficientPermissionsError,
    InvalidShareTokenError,
    DependencyFailureError,
    GroupLockedError,
    GroupAtCapacityError,
    NotPendingError,
    NotApprovedError,
    AlreadyApprovedError,
    CannotRemoveOwnerError,
    ParticipantNotApprovedError,
    GroupNotReadyForPaymentError,
)
from apps.catalog.services import InvalidQuantityError


STATE_CONFLICT_ERRORS = (
    GroupLockedError,
    GroupAtCapacityError,
    NotPendingError,
    NotApprovedError,
    AlreadyApprovedError,
    CannotRemoveOwnerError,
    ParticipantNotApprovedError,
    GroupNotReadyForPaymentError,
)

SERVICE_ERRORS = (GroupsServiceError, InvalidQuantityError)


def service_error_response(error):
    """Translate a service exception into an error response."""
    if isinstance(error, (GroupNotFoundError, UserNotFoundError)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, (InsufficientPermissionsError, InvalidShareTokenError)):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(error, STATE_CONFLICT_ERRORS):
        code = status.HTTP_409_CONFLICT
    elif isinstance(error, DependencyFailureError):
        code = status.HTTP_424_FAILED_DEPENDENCY
    else:
        code = status.HTTP_400_BAD_REQUEST
    return Response({'error': str(error)}, status=code)


class GroupPagination(PageNumberPagination):
    """Custom pagination for groups."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class GroupViewSet(viewsets.ModelViewSet):
    """
    ViewSet for popular groups.

    All business logic is handled by services.
    Views are thin HTTP handlers only.

    list: Groups the user owns or has asked to join
    create: Create a new group, optionally with items
    retrieve: Get a group visible to the user
    update: Update group settings (owner only)
    partial_update: Partially update group settings (owner only)
    destroy: Delete a group (owner only, refused once someone paid)
    """

    serializer_class = GroupSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = GroupPagination

    def get_queryset(self):
        """Own groups and participations; other public groups are visible too."""
        user = self.request.user
        mine = Q(owner=user) | Q(participants__user=user)

        if self.action == 'list':
            visible = Group.objects.filter(mine)
        else:
            visible = Group.objects.filter(mine | Q(is_public=True))

        return visible.select_related('owner', 'pickup_address').prefetch_related(
            'items__product__discount_tiers',
            'participants',
        ).distinct()

    def get_serializer_class(self):
        """Use different serializers for different actions."""
        if self.action in ('list', 'public'):
            return GroupListSerializer
        elif self.action == 'create':
            return GroupCreateSerializer
        return GroupSerializer

    def _group_response(self, group_id, code=status.HTTP_200_OK):
        group = get_group_by_id(group_id=group_id)
        serializer = GroupSerializer(group, context={'request': self.request})
        return Response(serializer.data, status=code)

    def create(self, request, *args, **kwargs):
        """Create a new group."""
        serializer = GroupCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            group = create_group(
                name=data['name'],
                owner=request.user,
                description=data.get('description', ''),
                is_public=data.get('is_public', True),
                delivery_method=data['delivery_method'],
                pickup_address_id=data.get('pickup_address_id'),
                items=[(item['product_id'], item['quantity']) for item in data.get('items', [])],
            )
        except SERVICE_ERRORS as e:
            return service_error_response(e)

        return self._group_response(group.id, status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        """Update group settings."""
        partial = kwargs.pop('partial', False)
        serializer = GroupUpdateSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)

        try:
            group = update_group(
                group_id=self.kwargs['pk'],
                user=request.user,
                **serializer.validated_data
            )
        except SERVICE_ERRORS as e:
            return service_error_response(e)

        return self._group_response(group.id)

    def destroy(self, request, *args, **kwargs):
        """Delete a group."""
        try:
            delete_group(group_id=self.kwargs['pk'], user=request.user)
            return Response(status=status.HTTP_204_NO_CONTENT)
        except SERVICE_ERRORS as e:
            return service_error_response(e)

    @extend_schema(request=GroupFromCartSerializer, responses={201: GroupSerializer})
    @action(detail=False, methods=['post'], url_path='from-cart')
    def from_cart(self, request):
        """Turn the current cart into a new group."""
        serializer = GroupFromCartSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            group = create_group_from_cart(owner=request.user, **serializer.validated_data)
        except SERVICE_ERRORS as e:
            return service_error_response(e)

        return self._group_response(group.id, status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'])
    def public(self, request):
        """Browse public groups of other users."""
        groups = list_public_groups(exclude_owner=request.user)
        page = self.paginate_queryset(groups)
        if page is not None:
            serializer = GroupListSerializer(page, many=True, context={'request': request})
            return self.get_paginated_response(serializer.data)

        serializer = GroupListSerializer(groups, many=True, context={'request': request})
        return Response(serializer.data)

    @action(detail=False, methods=['get'], url_path=r'shared/(?P<share_token>[^/.]+)')
    def shared(self, request, share_token=None):
        """Open a group from its share link."""
        try:
            group = get_group_by_share_token(share_token=share_token)
        except SERVICE_ERRORS as e:
            return service_error_response(e)

        data = GroupSerializer(group, context={'request': request}).data
        # Visitors holding the link need it to join a private group
        data['share_token'] = group.share_token
        return Response(data)

    @extend_schema(request=GroupItemInputSerializer, responses={201: GroupItemSerializer})
    @action(detail=True, methods=['post'])
    def items(self, request, pk=None):
        """Add a product to the group (owner only)."""
        serializer = GroupItemInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            item = add_item(
                group_id=pk,
                product_id=serializer.validated_data['product_id'],
                quantity=serializer.validated_data['quantity'],
                user=request.user
            )
        except SERVICE_ERRORS as e:
            return service_error_response(e)

        return Response(GroupItemSerializer(item).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=SetQuantitySerializer, responses={200: GroupItemSerializer})
    @action(
        detail=True,
        methods=['put', 'delete'],
        url_path=r'items/(?P<product_id>[0-9a-fA-F-]{36})',
        url_name='item-detail'
    )
    def item_detail(self, request, pk=None, product_id=None):
        """Resize (PUT) or remove (DELETE) a group item (owner only)."""
        try:
            if request.method == 'DELETE':
                remove_item(group_id=pk, product_id=product_id, user=request.user)
                return Response(status=status.HTTP_204_NO_CONTENT)

            serializer = SetQuantitySerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            item = set_quantity(
                group_id=pk,
                product_id=product_id,
                quantity=serializer.validated_data['quantity'],
                user=request.user
            )
        except SERVICE_ERRORS as e:
            return service_error_response(e)

        if item is None:
            return Response(status=status.HTTP_204_NO_CONTENT)
        return Response(GroupItemSerializer(item).data)

    @extend_schema(responses={200: GroupTotalsSerializer})
    @action(detail=True, methods=['get'])
    def totals(self, request, pk=None):
        """Group value, discounted value and potential savings."""
        group = self.get_object()
        totals = get_group_totals(group_id=group.id)
        return Response(GroupTotalsSerializer(totals).data)

    @extend_schema(request=JoinGroupSerializer, responses={200: GroupParticipantSerializer, 201: GroupParticipantSerializer})
    @action(detail=True, methods=['post'])
    def join(self, request, pk=None):
        """Ask to join a group. Repeating a pending request answers 200."""
        serializer = JoinGroupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            group = fetch_group(pk)
            already_pending = group.participants.filter(
                user=request.user,
                status=ParticipantStatus.PENDING
            ).exists()
            participant = request_join(
                group_id=group.id,
                user=request.user,
                share_token=serializer.validated_data.get('share_token') or None
            )
        except SERVICE_ERRORS as e:
            return service_error_response(e)

        code = status.HTTP_200_OK if already_pending else status.HTTP_201_CREATED
        output_serializer = GroupParticipantSerializer(participant)
        return Response(output_serializer.data, status=code)

    @extend_schema(responses={200: ParticipationStatusSerializer})
    @action(detail=True, methods=['get'])
    def participation(self, request, pk=None):
        """Current user's standing in the group."""
        try:
            result = get_participation_status(group_id=pk, user=request.user)
        except SERVICE_ERRORS as e:
            return service_error_response(e)
        return Response(ParticipationStatusSerializer(result).data)

    @extend_schema(responses={200: GroupParticipantSerializer(many=True)})
    @action(detail=True, methods=['get'])
    def pending(self, request, pk=None):
        """Pending join requests (owner only)."""
        try:
            participants = get_pending_participants(group_id=pk, user=request.user)
        except SERVICE_ERRORS as e:
            return service_error_response(e)
        return Response(GroupParticipantSerializer(participants, many=True).data)

    @extend_schema(responses={200: GroupParticipantSerializer(many=True)})
    @action(detail=True, methods=['get'])
    def approved(self, request, pk=None):
        """Approved participants (members only)."""
        try:
            participants = get_approved_participants(group_id=pk, user=request.user)
        except SERVICE_ERRORS as e:
            return service_error_response(e)
        return Response(GroupParticipantSerializer(participants, many=True).data)

    @extend_schema(request=ParticipantActionSerializer, responses={200: GroupParticipantSerializer})
    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        """Approve a pending request (owner only)."""
        serializer = ParticipantActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            participant = approve_participant(
                group_id=pk,
                user_id=serializer.validated_data['user_id'],
                approved_by=request.user
            )
        except SERVICE_ERRORS as e:
            return service_error_response(e)

        return Response(GroupParticipantSerializer(participant).data)

    @extend_schema(request=ParticipantActionSerializer, responses={200: GroupParticipantSerializer})
    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        """Reject a pending request (owner only)."""
        serializer = ParticipantActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            participant = reject_participant(
                group_id=pk,
                user_id=serializer.validated_data['user_id'],
                rejected_by=request.user
            )
        except SERVICE_ERRORS as e:
            return service_error_response(e)

        return Response(GroupParticipantSerializer(participant).data)

    @extend_schema(request=ParticipantActionSerializer, responses={204: None})
    @action(detail=True, methods=['delete'])
    def remove_participant(self, request, pk=None):
        """Remove an approved participant (owner, or the participant themself)."""
        user_id = request.data.get('user_id')

        if not user_id:
            return Response(
                {'error': 'user_id is required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        try:
            remove_participant(group_id=pk, user_id=user_id, removed_by=request.user)
        except SERVICE_ERRORS as e:
            return service_error_response(e)

        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=ParticipantActionSerializer, responses={201: GroupParticipantSerializer})
    @action(detail=True, methods=['post'])
    def add_participant(self, request, pk=None):
        """Add a user straight to approved (owner only)."""
        serializer = ParticipantActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            participant = add_participant_directly(
                group_id=pk,
                user_id=serializer.validated_data['user_id'],
                added_by=request.user
            )
        except SERVICE_ERRORS as e:
            return service_error_response(e)

        return Response(GroupParticipantSerializer(participant).data, status=status.HTTP_201_CREATED)

    @extend_schema(responses={200: PaymentEligibilitySerializer})
    @action(detail=True, methods=['get'])
    def eligibility(self, request, pk=None):
        """Capacity and payment readiness of the group."""
        try:
            result = get_payment_eligibility(group_id=pk)
        except SERVICE_ERRORS as e:
            return service_error_response(e)
        return Response(PaymentEligibilitySerializer(result).data)

    @extend_schema(request=RecordPaymentSerializer, responses={200: PaymentStatusSerializer(many=True)})
    @action(
        detail=True,
        methods=['get', 'post'],
        permission_classes=[IsAuthenticated, IsGroupMember]
    )
    def payments(self, request, pk=None):
        """Payment status of members (GET) or record a payment (POST)."""
        group = self.get_object()

        if request.method == 'GET':
            rows = get_payment_status(group_id=group.id)
            return Response(PaymentStatusSerializer(rows, many=True).data)

        serializer = RecordPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            payment = record_payment(
                group_id=group.id,
                user_id=data.get('user_id', request.user.id),
                amount=data['amount'],
                payer=request.user,
                payment_reference=data.get('payment_reference', '')
            )
        except SERVICE_ERRORS as e:
            return service_error_response(e)

        return Response(GroupPaymentSerializer(payment).data, status=status.HTTP_201_CREATED)
