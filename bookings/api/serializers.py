# =============================================================================
# IMPORTS
# =============================================================================
from django.utils import timezone
from rest_framework import serializers

from bookings.models import Booking, Review, Role, Tour, User
from bookings.services import TourAvailabilityService


# =============================================================================
# SIMPLE MODEL SERIALIZERS
# =============================================================================
class UserSerializer(serializers.ModelSerializer):
    display_name = serializers.ReadOnlyField()

    class Meta:
        model = User
        fields = ('id', 'email', 'name', 'display_name', 'image', 'role', 'created_at')
        read_only_fields = fields


class GuideSerializer(serializers.ModelSerializer):
    name = serializers.ReadOnlyField(source='display_name')

    class Meta:
        model = User
        fields = ('id', 'name', 'image')


class TourSerializer(serializers.ModelSerializer):
    created_by = GuideSerializer(read_only=True)
    formatted_duration = serializers.ReadOnlyField()
    is_completed = serializers.ReadOnlyField()
    availability = serializers.SerializerMethodField()

    class Meta:
        model = Tour
        fields = (
            'id', 'title', 'description', 'image_url', 'price', 'duration',
            'formatted_duration', 'date', 'max_participants', 'is_completed',
            'availability', 'created_by', 'created_at', 'updated_at',
        )

    def get_availability(self, obj):
        return TourAvailabilityService.for_tour(obj)


class BookingSerializer(serializers.ModelSerializer):
    tour = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = ('id', 'tour', 'user', 'created_at')
        read_only_fields = fields

    def get_tour(self, obj):
        tour = obj.tour
        # Reuse the count from `with_tour_booking_counts()` when present
        booked_count = getattr(obj, 'tour_booked_count', None)
        if booked_count is not None:
            tour.booked_count = booked_count
        return TourSerializer(tour).data


class ReviewSerializer(serializers.ModelSerializer):
    """Review as listed on a guide's page."""
    reviewer_name = serializers.ReadOnlyField(source='reviewer.display_name')
    tour_title = serializers.ReadOnlyField(source='tour.title')
    rating_text = serializers.CharField(source='get_rating_text', read_only=True)

    class Meta:
        model = Review
        fields = (
            'id', 'rating', 'rating_text', 'comment', 'created_at',
            'tour', 'tour_title', 'guide', 'reviewer', 'reviewer_name',
        )
        read_only_fields = fields


# =============================================================================
# CREATE/UPDATE SERIALIZERS
# =============================================================================
class TourCreateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Tour
        fields = (
            'title', 'description', 'image_url', 'price', 'duration', 'date',
            'max_participants',
        )

    def validate_price(self, value):
        if value < 0:
            raise serializers.ValidationError("Price cannot be negative.")
        return value

    def validate_duration(self, value):
        if value <= 0:
            raise serializers.ValidationError("Duration must be greater than 0.")
        return value

    def validate_max_participants(self, value):
        if value < 1:
            raise serializers.ValidationError("At least one participant must be allowed.")
        return value

    def validate_date(self, value):
        if value <= timezone.now():
            raise serializers.ValidationError("Tour date must be in the future.")
        return value


class ReviewCreateSerializer(serializers.Serializer):
    tour_id = serializers.IntegerField()
    guide_id = serializers.IntegerField()
    rating = serializers.IntegerField(min_value=1, max_value=5)
    comment = serializers.CharField(max_length=5000, trim_whitespace=True)


class RoleUpdateSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=Role.choices)
