# =============================================================================
# IMPORTS
# =============================================================================
import logging

import cloudinary.exceptions
import cloudinary.uploader
from django.conf import settings
from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.core.validators import validate_email
from django.db import IntegrityError, transaction
from django.db.models import Avg, Count

from .exceptions import (
    AlreadyBooked, AlreadyReviewed, Conflict, Forbidden, FullyBooked,
    InternalError, InvalidInput, NotFound, TourNotYetCompleted
)
from .models import Booking, Review, Role, Tour, User
from .permissions import (
    ensure_can_change_roles, ensure_can_create_tour, ensure_can_manage_tour,
    ensure_can_upload_images, ensure_signed_in
)
from .utils import build_image_public_id, mask_email

# Logger
logger = logging.getLogger(__name__)

TOUR_FIELDS = (
    'title', 'description', 'image_url', 'price', 'duration', 'date',
    'max_participants',
)


# =============================================================================
# LOOKUP HELPERS
# =============================================================================
def _get_object(queryset, pk, message, lock=False):
    """Fetch a row by primary key or raise NotFound."""
    if lock:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=pk)
    except (ObjectDoesNotExist, ValueError, TypeError):
        raise NotFound(message)


def _get_tour(tour_id, lock=False):
    return _get_object(Tour.objects.all(), tour_id, "Tour not found", lock=lock)


def _full_clean(instance, exclude=None):
    """Run model validation and report failures as InvalidInput."""
    try:
        instance.full_clean(exclude=exclude)
    except ValidationError as e:
        raise InvalidInput("Validation error", errors=e.message_dict)


# =============================================================================
# TOUR AVAILABILITY SERVICE
# =============================================================================
class TourAvailabilityService:
    """Service class for reporting tour capacity figures."""

    @staticmethod
    def for_tour(tour, booked_count=None):
        """
        Compute availability for a loaded tour.

        Uses the `booked_count` annotation when the tour came from
        `Tour.objects.with_booking_counts()`, otherwise issues one COUNT.
        """
        if booked_count is None:
            booked_count = getattr(tour, 'booked_count', None)
        if booked_count is None:
            booked_count = Booking.objects.for_tour(tour).count()

        available_spots = max(0, tour.max_participants - booked_count)
        return {
            'tour_id': tour.pk,
            'max_participants': tour.max_participants,
            'booked_count': booked_count,
            'available_spots': available_spots,
            'is_fully_booked': available_spots == 0,
        }

    @staticmethod
    def get_availability(tour_id):
        """Return capacity figures for a tour, or raise NotFound."""
        tour = _get_object(
            Tour.objects.with_booking_counts(), tour_id, "Tour not found"
        )
        return TourAvailabilityService.for_tour(tour)


# =============================================================================
# BOOKING SERVICE
# =============================================================================
class BookingService:
    """Service class for creating and cancelling bookings."""

    @staticmethod
    def create_booking(tour_id, user):
        """
        Reserve one slot on a tour for `user`.

        Checks run in order and stop at the first failure: the tour exists,
        the user has no booking for it yet, and a slot is still free. The
        tour row stays locked from the checks until the insert commits, so
        concurrent requests for the last slot cannot both succeed.
        """
        ensure_signed_in(user)

        try:
            with transaction.atomic():
                tour = _get_tour(tour_id, lock=True)

                if Booking.objects.filter(tour=tour, user=user).exists():
                    raise AlreadyBooked()

                booked_count = Booking.objects.for_tour(tour).count()
                if booked_count >= tour.max_participants:
                    logger.warning(f"Booking rejected: tour {tour.pk} is full ({booked_count}/{tour.max_participants})")
                    raise FullyBooked()

                booking = Booking.objects.create(tour=tour, user=user)
        except IntegrityError:
            # Unique (tour, user) constraint caught a duplicate the check missed
            logger.warning(f"Duplicate booking blocked by constraint: tour {tour_id}, user {user.pk}")
            raise AlreadyBooked()

        logger.info(f"Booking {booking.pk} created: tour {tour.pk}, user {user.pk}")
        return booking

    @staticmethod
    def cancel_booking(booking_id, user):
        """Delete the user's own booking, freeing its slot."""
        ensure_signed_in(user)
        booking = _get_object(Booking.objects.all(), booking_id, "Booking not found")

        if booking.user_id != user.pk:
            raise Forbidden("You can only cancel your own bookings.")

        tour_id = booking.tour_id
        booking.delete()
        logger.info(f"Booking {booking_id} cancelled: tour {tour_id}, user {user.pk}")

    @staticmethod
    def get_booking_for_user(booking_id, user):
        ensure_signed_in(user)
        booking = _get_object(
            Booking.objects.with_tour_booking_counts().select_related('tour', 'tour__created_by'),
            booking_id, "Booking not found"
        )
        if booking.user_id != user.pk:
            raise Forbidden("You can only view your own bookings.")
        return booking

    @staticmethod
    def bookings_for_user(user):
        ensure_signed_in(user)
        return Booking.objects.for_user(user).with_tour_booking_counts().select_related(
            'tour', 'tour__created_by'
        ).order_by('-created_at')

    @staticmethod
    def has_booked(tour_id, user):
        ensure_signed_in(user)
        try:
            return Booking.objects.filter(tour_id=tour_id, user=user).exists()
        except (ValueError, TypeError):
            return False


# =============================================================================
# REVIEW SERVICE
# =============================================================================
class ReviewService:
    """Service class for review eligibility and creation."""

    @staticmethod
    def check_eligibility(tour, reviewer):
        """Raise unless `reviewer` may review `tour` right now."""
        if not Booking.objects.filter(tour=tour, user=reviewer).exists():
            raise Forbidden("You must have been registered for the tour to submit a review.")

        if not tour.is_completed:
            raise TourNotYetCompleted()

        if Review.objects.filter(tour=tour, reviewer=reviewer).exists():
            raise AlreadyReviewed()

    @staticmethod
    def can_review(tour_id, reviewer):
        ensure_signed_in(reviewer)
        tour = _get_tour(tour_id)
        try:
            ReviewService.check_eligibility(tour, reviewer)
        except (Forbidden, Conflict):
            return False
        return True

    @staticmethod
    def create_review(tour_id, reviewer, guide_id, rating, comment):
        """
        Record a review of the guide who ran a completed tour.

        Input is validated first, then the eligibility rules; nothing is
        written unless every check passes.
        """
        ensure_signed_in(reviewer)

        errors = {}
        if isinstance(rating, bool) or not isinstance(rating, int) or not (1 <= rating <= 5):
            errors['rating'] = "Rating must be between 1 and 5."
        if not comment or not str(comment).strip():
            errors['comment'] = "This field is required."
        if guide_id in (None, ''):
            errors['guide_id'] = "This field is required."
        if errors:
            raise InvalidInput("Missing or invalid review fields", errors=errors)

        tour = _get_tour(tour_id)

        if str(tour.created_by_id) != str(guide_id):
            raise InvalidInput(
                "Invalid tour guide ID provided",
                errors={'guide_id': "Does not match the tour's guide."}
            )

        ReviewService.check_eligibility(tour, reviewer)

        try:
            with transaction.atomic():
                review = Review.objects.create(
                    tour=tour,
                    guide_id=tour.created_by_id,
                    reviewer=reviewer,
                    rating=rating,
                    comment=str(comment).strip(),
                )
        except IntegrityError:
            raise AlreadyReviewed()

        logger.info(f"Review {review.pk} created: tour {tour.pk}, guide {tour.created_by_id}, rating {rating}")
        return review


# =============================================================================
# TOUR SERVICE
# =============================================================================
class TourService:
    """Service class for creating, editing and deleting tours."""

    @staticmethod
    def create_tour(user, data):
        ensure_can_create_tour(user)

        tour = Tour(
            created_by=user,
            **{field: value for field, value in data.items() if field in TOUR_FIELDS}
        )
        _full_clean(tour)
        tour.save()

        logger.info(f"Tour {tour.pk} created by user {user.pk}")
        return tour

    @staticmethod
    def update_tour(tour_id, user, data):
        """
        Apply a partial update to a tour.

        Capacity may not drop below the number of bookings already taken.
        """
        ensure_signed_in(user)

        with transaction.atomic():
            tour = _get_tour(tour_id, lock=True)
            ensure_can_manage_tour(user, tour)

            changed = [field for field in data if field in TOUR_FIELDS]
            for field in changed:
                setattr(tour, field, data[field])

            if 'max_participants' in changed:
                booked_count = Booking.objects.for_tour(tour).count()
                if tour.max_participants < booked_count:
                    raise InvalidInput(
                        f"max_participants cannot be lower than the {booked_count} existing bookings",
                        errors={'max_participants': f"At least {booked_count} required."}
                    )

            _full_clean(tour)
            tour.save()

        logger.info(f"Tour {tour.pk} updated by user {user.pk}: {', '.join(changed) or 'no changes'}")
        return tour

    @staticmethod
    def delete_tour(tour_id, user):
        """Delete a tour together with its bookings and reviews."""
        ensure_signed_in(user)
        tour = _get_tour(tour_id)
        ensure_can_manage_tour(user, tour)

        _, deleted = tour.delete()
        logger.info(
            f"Tour {tour_id} deleted by user {user.pk} "
            f"({deleted.get('bookings.Booking', 0)} bookings, {deleted.get('bookings.Review', 0)} reviews)"
        )

    @staticmethod
    def tours_for_creator(user):
        ensure_can_create_tour(user)
        return Tour.objects.with_booking_counts().created_by_user(user).select_related(
            'created_by'
        ).order_by('-created_at')


# =============================================================================
# GUIDE STATS SERVICE
# =============================================================================
class GuideStatsService:
    """Service class for guide ratings and profile figures."""

    @staticmethod
    def reviews_for_guide(guide_id):
        return Review.objects.filter(guide_id=guide_id).select_related(
            'tour', 'reviewer'
        ).order_by('-created_at')

    @staticmethod
    def average_rating(guide_id):
        stats = Review.objects.filter(guide_id=guide_id).aggregate(
            average=Avg('rating'), total=Count('id')
        )
        average = stats['average']
        return {
            'average_rating': round(float(average), 1) if average is not None else None,
            'total_reviews': stats['total'],
        }

    @staticmethod
    def profile(guide_id):
        """
        Public profile of a guide.

        A completed tour counts as successful when more than one participant
        booked it.
        """
        guide = _get_object(User.objects.all(), guide_id, "Guide not found")

        completed_tours = Tour.objects.created_by_user(guide).past().with_booking_counts()
        rating = GuideStatsService.average_rating(guide.pk)

        return {
            'id': guide.pk,
            'name': guide.display_name,
            'image': guide.image or None,
            'stats': {
                'average_rating': rating['average_rating'],
                'total_reviews': rating['total_reviews'],
                'successful_tours': completed_tours.filter(booked_count__gt=1).count(),
                'total_completed_tours': completed_tours.count(),
            },
        }


# =============================================================================
# USER ROLE SERVICE
# =============================================================================
class UserRoleService:
    """Service class for role changes."""

    @staticmethod
    def update_role(actor, user_id, role):
        ensure_can_change_roles(actor)

        if role not in Role.values:
            raise InvalidInput("Invalid role", errors={'role': f"Must be one of {', '.join(Role.values)}."})

        user = _get_object(User.objects.all(), user_id, "User not found")
        previous = user.role
        user.role = role
        user.save(update_fields=['role'])

        logger.info(f"User {user.pk} role changed {previous} -> {role} by admin {actor.pk}")
        return user

    @staticmethod
    def claim_admin(email, name=None):
        """
        Bootstrap path: make the account for `email` an admin, creating it
        if the person has never signed in.
        """
        try:
            validate_email(email)
        except ValidationError:
            raise InvalidInput("Email is required", errors={'email': "Enter a valid email address."})

        with transaction.atomic():
            user, created = User.objects.get_or_create_from_identity(email, name=name)
            user.role = Role.ADMIN
            user.save(update_fields=['role'])

        logger.info(f"Admin role claimed for {mask_email(user.email)} ({'new' if created else 'existing'} user)")
        return user, created


# =============================================================================
# TOUR IMAGE SERVICE
# =============================================================================
class TourImageService:
    """Service class for storing tour images in Cloudinary."""

    @staticmethod
    def upload(file, user):
        """Upload an image and return its public URL."""
        ensure_can_upload_images(user)

        if file is None:
            raise InvalidInput("No file uploaded", errors={'file': "This field is required."})

        content_type = getattr(file, 'content_type', '') or ''
        if not content_type.startswith('image/'):
            raise InvalidInput("Only image files can be uploaded", errors={'file': f"Unsupported type '{content_type}'."})

        if file.size > settings.TOUR_IMAGE_MAX_BYTES:
            raise InvalidInput("File too large", errors={'file': f"Maximum size is {settings.TOUR_IMAGE_MAX_BYTES} bytes."})

        public_id = build_image_public_id(file.name)
        logger.info(f"Uploading tour image {public_id} ({content_type}, {file.size} bytes) for user {user.pk}")

        try:
            result = cloudinary.uploader.upload(
                file,
                folder=settings.TOUR_IMAGE_FOLDER,
                public_id=public_id,
                resource_type='image',
                overwrite=False,
            )
        except cloudinary.exceptions.Error as e:
            logger.exception(f"Error uploading tour image to Cloudinary: {e}")
            raise InternalError("Failed to upload file to storage")

        url = result.get('secure_url') or result.get('url')
        if not url:
            logger.error(f"Cloudinary upload returned no URL: {result}")
            raise InternalError("Failed to upload file to storage")

        return url
