from datetime import timedelta
from decimal import Decimal

from django.utils import timezone

from bookings.models import Booking, Role, Tour, User


def make_user(email, role=Role.USER, name=""):
    return User.objects.create_user(
        username=email,
        email=email,
        password="TourPass123",
        name=name,
        role=role,
    )


def make_tour(creator, days_from_now=7, **overrides):
    fields = {
        "title": "Old Town Walking Tour",
        "description": "<p>Two hours through the historic centre.</p>",
        "price": Decimal("25.00"),
        "duration": 2,
        "date": timezone.now() + timedelta(days=days_from_now),
        "max_participants": 10,
    }
    fields.update(overrides)
    return Tour.objects.create(created_by=creator, **fields)


def book(tour, *users):
    return [Booking.objects.create(tour=tour, user=user) for user in users]
