from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from bookings.models import Tour, User
from bookings.permissions import IsAdminRole, IsGuideOrAdmin, IsTourManagerOrReadOnly
from bookings.services import (
    BookingService, GuideStatsService, ReviewService, TourAvailabilityService,
    TourService, UserRoleService
)

from .serializers import (
    BookingSerializer, ReviewCreateSerializer, ReviewSerializer,
    RoleUpdateSerializer, TourCreateSerializer, TourSerializer, UserSerializer
)


ID_PATTERN = r'\d+'


class TourViewSet(viewsets.ModelViewSet):
    """
    API endpoint that allows tours to be viewed or edited.

    Writes go through TourService so ownership and capacity rules apply the
    same way they do everywhere else.
    """
    queryset = Tour.objects.with_booking_counts().select_related('created_by').order_by('date')
    serializer_class = TourSerializer
    permission_classes = [IsTourManagerOrReadOnly]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['created_by']
    search_fields = ['title', 'description']
    ordering_fields = ['date', 'price', 'created_at']
    lookup_value_regex = ID_PATTERN

    def get_serializer_class(self):
        if self.action in ['create', 'update', 'partial_update']:
            return TourCreateSerializer
        return TourSerializer

    def get_queryset(self):
        queryset = super().get_queryset()
        upcoming = self.request.query_params.get('upcoming', '')
        if upcoming.lower() in ('1', 'true', 'yes'):
            queryset = queryset.upcoming()
        return queryset

    def _tour_response(self, tour_id, status_code=status.HTTP_200_OK):
        tour = Tour.objects.with_booking_counts().select_related('created_by').get(pk=tour_id)
        return Response(TourSerializer(tour).data, status=status_code)

    def create(self, request, *args, **kwargs):
        serializer = TourCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        tour = TourService.create_tour(request.user, serializer.validated_data)
        return self._tour_response(tour.pk, status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        serializer = TourCreateSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        tour = TourService.update_tour(kwargs['pk'], request.user, serializer.validated_data)
        return self._tour_response(tour.pk)

    def destroy(self, request, *args, **kwargs):
        TourService.delete_tour(kwargs['pk'], request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['get'], permission_classes=[permissions.AllowAny])
    def availability(self, request, pk=None):
        """
        Capacity, booked count and free spots for a tour.
        """
        return Response(TourAvailabilityService.get_availability(pk))

    @action(detail=True, methods=['post'], permission_classes=[permissions.IsAuthenticated])
    def book(self, request, pk=None):
        """
        Books one slot on the tour for the current user.
        """
        booking = BookingService.create_booking(pk, request.user)
        return Response(
            {'status': 'success', 'booking_id': booking.pk},
            status=status.HTTP_201_CREATED
        )

    @action(detail=True, methods=['get'], url_path='check-booking',
            permission_classes=[permissions.IsAuthenticated])
    def check_booking(self, request, pk=None):
        return Response({'has_booked': BookingService.has_booked(pk, request.user)})

    @action(detail=True, methods=['get'], url_path='review-eligibility',
            permission_classes=[permissions.IsAuthenticated])
    def review_eligibility(self, request, pk=None):
        return Response({'can_review': ReviewService.can_review(pk, request.user)})

    @action(detail=False, methods=['get'], permission_classes=[IsGuideOrAdmin])
    def mine(self, request):
        """
        Tours created by the current guide or admin.
        """
        page = self.paginate_queryset(TourService.tours_for_creator(request.user))
        serializer = TourSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)


class BookingViewSet(mixins.ListModelMixin,
                     mixins.RetrieveModelMixin,
                     mixins.DestroyModelMixin,
                     viewsets.GenericViewSet):
    """
    API endpoint for the current user's own bookings.
    """
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated]
    lookup_value_regex = ID_PATTERN

    def get_queryset(self):
        return BookingService.bookings_for_user(self.request.user)

    def retrieve(self, request, *args, **kwargs):
        booking = BookingService.get_booking_for_user(kwargs['pk'], request.user)
        return Response(BookingSerializer(booking).data)

    def destroy(self, request, *args, **kwargs):
        BookingService.cancel_booking(kwargs['pk'], request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)


class ReviewViewSet(viewsets.GenericViewSet):
    """
    API endpoint for submitting reviews of completed tours.
    """
    serializer_class = ReviewCreateSerializer
    permission_classes = [permissions.IsAuthenticated]

    def create(self, request, *args, **kwargs):
        serializer = ReviewCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        review = ReviewService.create_review(
            tour_id=data['tour_id'],
            reviewer=request.user,
            guide_id=data['guide_id'],
            rating=data['rating'],
            comment=data['comment'],
        )
        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)


class GuideViewSet(viewsets.GenericViewSet):
    """
    Public guide pages: reviews received, average rating and profile stats.
    """
    queryset = User.objects.all()
    permission_classes = [permissions.AllowAny]
    lookup_value_regex = ID_PATTERN

    @action(detail=True, methods=['get'])
    def reviews(self, request, pk=None):
        page = self.paginate_queryset(GuideStatsService.reviews_for_guide(pk))
        serializer = ReviewSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    @action(detail=True, methods=['get'])
    def rating(self, request, pk=None):
        return Response(GuideStatsService.average_rating(pk))

    @action(detail=True, methods=['get'])
    def profile(self, request, pk=None):
        return Response(GuideStatsService.profile(pk))


class UserViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    Admin-only user listing and role management.
    """
    queryset = User.objects.order_by('-created_at')
    serializer_class = UserSerializer
    permission_classes = [IsAdminRole]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['role']
    search_fields = ['email', 'name']
    lookup_value_regex = ID_PATTERN

    @action(detail=True, methods=['patch'])
    def role(self, request, pk=None):
        serializer = RoleUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserRoleService.update_role(request.user, pk, serializer.validated_data['role'])
        return Response(UserSerializer(user).data)
