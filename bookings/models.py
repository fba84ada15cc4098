# =============================================================================
# IMPORTS
# =============================================================================
import logging
from decimal import Decimal
from typing import Optional

from django.contrib.auth.models import AbstractUser, UserManager
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.db.models import Count, Q
from django.utils import timezone

from .utils import format_duration

# Logger
logger = logging.getLogger(__name__)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================
def validate_rating(value: int) -> None:
    """Validate that a rating is between 1 and 5."""
    if not (1 <= value <= 5):
        raise ValidationError("Rating must be between 1 and 5.")


def validate_positive_duration(value: float) -> None:
    """Validate that a duration in hours is strictly positive."""
    if value is None or value <= 0:
        raise ValidationError("Duration must be greater than zero.")


# =============================================================================
# BASE ABSTRACT MODELS
# =============================================================================
class TimeStampedModel(models.Model):
    """Abstract base model with created_at and updated_at fields."""
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ['-created_at']


# =============================================================================
# USERS
# =============================================================================
class Role(models.TextChoices):
    USER = 'USER', 'User'
    GUIDE = 'GUIDE', 'Guide'
    ADMIN = 'ADMIN', 'Admin'


class TourhubUserManager(UserManager):
    """User manager aware of identities coming from the sign-in provider."""

    def get_or_create_from_identity(self, email, name=None, image=None):
        """
        Return the user for an identity-provider email, creating it on first sign-in.

        New users get the USER role and an unusable password; sign-in happens
        through the provider, never through Django's password flow.
        """
        email = self.normalize_email(email)
        user = self.filter(email__iexact=email).first()
        if user:
            return user, False

        user = self.model(
            username=email,
            email=email,
            name=name or email.split('@')[0],
            image=image or '',
        )
        user.set_unusable_password()
        user.save(using=self._db)
        logger.info(f"Created user {user.pk} on first sign-in")
        return user, True


class User(AbstractUser):
    """Marketplace account. The role decides what a user may manage."""
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=150, blank=True)
    image = models.URLField(blank=True)
    role = models.CharField(
        max_length=10, choices=Role.choices, default=Role.USER
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TourhubUserManager()

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['role'], name='bookings_user_role_idx'),
        ]

    def __str__(self):
        return self.name or self.email

    @property
    def is_admin(self):
        return self.role == Role.ADMIN

    @property
    def is_guide(self):
        return self.role == Role.GUIDE

    @property
    def can_manage_tours(self):
        """Guides and admins may publish tours."""
        return self.role in (Role.ADMIN, Role.GUIDE)

    @property
    def display_name(self):
        return self.name or self.email.split('@')[0]


# =============================================================================
# CUSTOM MANAGERS
# =============================================================================
class TourQuerySet(models.QuerySet):
    """Query helpers for Tour."""

    def with_booking_counts(self):
        """Annotate each tour with `booked_count` using a single COUNT."""
        return self.annotate(booked_count=Count('bookings', distinct=True))

    def upcoming(self):
        return self.filter(date__gt=timezone.now())

    def past(self):
        return self.filter(date__lt=timezone.now())

    def created_by_user(self, user):
        return self.filter(created_by=user)


class BookingQuerySet(models.QuerySet):
    """Query helpers for Booking."""

    def for_user(self, user):
        return self.filter(user=user)

    def for_tour(self, tour):
        return self.filter(tour=tour)

    def with_tour_booking_counts(self):
        """Annotate each booking with `tour_booked_count`, the bookings on its tour."""
        return self.annotate(tour_booked_count=Count('tour__bookings', distinct=True))


# =============================================================================
# TOURS
# =============================================================================
class Tour(TimeStampedModel):
    """A bookable guided experience with a fixed capacity and date."""
    title = models.CharField(max_length=200)
    description = models.TextField(help_text="Rich text (HTML)")
    image_url = models.URLField(max_length=500, blank=True)

    price = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    duration = models.FloatField(
        validators=[validate_positive_duration],
        help_text="Duration in hours"
    )
    date = models.DateTimeField()
    max_participants = models.PositiveIntegerField(
        default=10, validators=[MinValueValidator(1)]
    )

    created_by = models.ForeignKey(
        'bookings.User', on_delete=models.CASCADE,
        related_name='created_tours'
    )

    # Managers
    objects = TourQuerySet.as_manager()

    class Meta(TimeStampedModel.Meta):
        verbose_name = "Tour"
        verbose_name_plural = "Tours"
        indexes = [
            models.Index(fields=['date'], name='bookings_tour_date_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(max_participants__gte=1),
                name='tour_max_participants_at_least_one',
            ),
            models.CheckConstraint(
                condition=Q(price__gte=0),
                name='tour_price_not_negative',
            ),
        ]

    def __str__(self):
        return self.title

    @property
    def is_completed(self):
        """A tour can be reviewed once its date lies strictly in the past."""
        return self.date < timezone.now()

    @property
    def formatted_duration(self):
        return format_duration(self.duration)


# =============================================================================
# BOOKINGS
# =============================================================================
class Booking(models.Model):
    """One reserved participant slot on a tour, owned by one user."""
    tour = models.ForeignKey(
        'Tour', on_delete=models.CASCADE, related_name='bookings'
    )
    user = models.ForeignKey(
        'bookings.User', on_delete=models.CASCADE, related_name='bookings'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    # Managers
    objects = BookingQuerySet.as_manager()

    class Meta:
        verbose_name = "Booking"
        verbose_name_plural = "Bookings"
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['tour', 'user'], name='unique_tour_booking_per_user'
            ),
        ]

    def __str__(self):
        return f"{self.user} - {self.tour}"


# =============================================================================
# REVIEWS
# =============================================================================
class Review(models.Model):
    """A participant's rating of the guide who ran a tour."""
    RATING_CHOICES = [
        (1, '1 - Poor'),
        (2, '2 - Fair'),
        (3, '3 - Good'),
        (4, '4 - Very Good'),
        (5, '5 - Excellent'),
    ]

    tour = models.ForeignKey(
        'Tour', on_delete=models.CASCADE, related_name='reviews'
    )
    # The guide being reviewed; always the tour's creator
    guide = models.ForeignKey(
        'bookings.User', on_delete=models.CASCADE, related_name='reviews_received'
    )
    reviewer = models.ForeignKey(
        'bookings.User', on_delete=models.CASCADE, related_name='reviews_written'
    )
    rating = models.PositiveSmallIntegerField(
        choices=RATING_CHOICES,
        validators=[validate_rating, MinValueValidator(1), MaxValueValidator(5)]
    )
    comment = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Review"
        verbose_name_plural = "Reviews"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['guide', 'rating'], name='bookings_review_guide_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['tour', 'reviewer'], name='unique_review_per_tour_reviewer'
            ),
            models.CheckConstraint(
                condition=Q(rating__gte=1) & Q(rating__lte=5),
                name='review_rating_between_1_and_5',
            ),
        ]

    def __str__(self):
        return f"Review by {self.reviewer} - {self.rating}/5"

    def get_rating_text(self) -> Optional[str]:
        """Get human-readable rating text."""
        return dict(self.RATING_CHOICES).get(self.rating, "Unknown").split(' - ')[-1]
