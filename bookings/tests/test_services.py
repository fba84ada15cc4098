from datetime import timedelta
from decimal import Decimal

from django.contrib.auth.models import AnonymousUser
from django.test import TestCase
from django.utils import timezone

from bookings.exceptions import (
    AlreadyBooked, AlreadyReviewed, Forbidden, FullyBooked, InvalidInput,
    NotFound, TourNotYetCompleted, Unauthorized
)
from bookings.models import Booking, Review, Role, Tour, User
from bookings.services import (
    BookingService, GuideStatsService, ReviewService, TourAvailabilityService,
    TourService, UserRoleService
)

from .helpers import book, make_tour, make_user


class TourAvailabilityServiceTests(TestCase):

    def setUp(self):
        self.guide = make_user("guide@example.com", Role.GUIDE)

    def test_empty_tour(self):
        tour = make_tour(self.guide, max_participants=3)

        self.assertEqual(TourAvailabilityService.get_availability(tour.pk), {
            "tour_id": tour.pk,
            "max_participants": 3,
            "booked_count": 0,
            "available_spots": 3,
            "is_fully_booked": False,
        })

    def test_full_tour(self):
        tour = make_tour(self.guide, max_participants=1)
        book(tour, make_user("a@example.com"))

        availability = TourAvailabilityService.get_availability(tour.pk)
        self.assertEqual(availability["available_spots"], 0)
        self.assertTrue(availability["is_fully_booked"])

    def test_available_spots_never_negative(self):
        tour = make_tour(self.guide, max_participants=2)
        book(tour, make_user("a@example.com"), make_user("b@example.com"), make_user("c@example.com"))

        self.assertEqual(TourAvailabilityService.for_tour(tour)["available_spots"], 0)

    def test_unknown_tour(self):
        with self.assertRaises(NotFound):
            TourAvailabilityService.get_availability(999999)


class BookingServiceTests(TestCase):

    def setUp(self):
        self.guide = make_user("guide@example.com", Role.GUIDE)
        self.alice = make_user("alice@example.com")
        self.bob = make_user("bob@example.com")
        self.carol = make_user("carol@example.com")

    def test_capacity_walkthrough(self):
        tour = make_tour(self.guide, max_participants=2)

        alice_booking = BookingService.create_booking(tour.pk, self.alice)
        self.assertEqual(TourAvailabilityService.get_availability(tour.pk)["available_spots"], 1)

        BookingService.create_booking(tour.pk, self.bob)
        availability = TourAvailabilityService.get_availability(tour.pk)
        self.assertEqual(availability["available_spots"], 0)
        self.assertTrue(availability["is_fully_booked"])

        with self.assertRaises(FullyBooked):
            BookingService.create_booking(tour.pk, self.carol)

        BookingService.cancel_booking(alice_booking.pk, self.alice)
        self.assertEqual(TourAvailabilityService.get_availability(tour.pk)["available_spots"], 1)

        BookingService.create_booking(tour.pk, self.carol)
        self.assertEqual(Booking.objects.filter(tour=tour).count(), 2)
        self.assertTrue(TourAvailabilityService.get_availability(tour.pk)["is_fully_booked"])

    def test_duplicate_booking_is_rejected(self):
        tour = make_tour(self.guide)
        BookingService.create_booking(tour.pk, self.alice)

        with self.assertRaises(AlreadyBooked):
            BookingService.create_booking(tour.pk, self.alice)
        self.assertEqual(Booking.objects.count(), 1)

    def test_duplicate_is_reported_before_full(self):
        tour = make_tour(self.guide, max_participants=1)
        BookingService.create_booking(tour.pk, self.alice)

        with self.assertRaises(AlreadyBooked):
            BookingService.create_booking(tour.pk, self.alice)

    def test_booking_unknown_tour(self):
        with self.assertRaises(NotFound):
            BookingService.create_booking(424242, self.alice)

    def test_booking_requires_sign_in(self):
        tour = make_tour(self.guide)
        with self.assertRaises(Unauthorized):
            BookingService.create_booking(tour.pk, AnonymousUser())

    def test_cannot_cancel_someone_elses_booking(self):
        tour = make_tour(self.guide)
        booking = BookingService.create_booking(tour.pk, self.alice)

        with self.assertRaises(Forbidden):
            BookingService.cancel_booking(booking.pk, self.bob)
        self.assertTrue(Booking.objects.filter(pk=booking.pk).exists())

    def test_cancel_unknown_booking(self):
        with self.assertRaises(NotFound):
            BookingService.cancel_booking(31337, self.alice)

    def test_has_booked(self):
        tour = make_tour(self.guide)
        BookingService.create_booking(tour.pk, self.alice)

        self.assertTrue(BookingService.has_booked(tour.pk, self.alice))
        self.assertFalse(BookingService.has_booked(tour.pk, self.bob))

    def test_bookings_for_user_only_lists_own(self):
        first, second = make_tour(self.guide), make_tour(self.guide)
        book(first, self.alice)
        book(second, self.alice, self.bob)

        self.assertEqual(BookingService.bookings_for_user(self.alice).count(), 2)
        self.assertEqual(BookingService.bookings_for_user(self.bob).count(), 1)


class ReviewServiceTests(TestCase):

    def setUp(self):
        self.guide = make_user("guide@example.com", Role.GUIDE)
        self.reviewer = make_user("reviewer@example.com")
        self.past_tour = make_tour(self.guide, days_from_now=-3)
        self.future_tour = make_tour(self.guide, days_from_now=3)

    def _review(self, tour, **overrides):
        fields = {"guide_id": self.guide.pk, "rating": 5, "comment": "Wonderful guide"}
        fields.update(overrides)
        return ReviewService.create_review(tour.pk, self.reviewer, **fields)

    def test_participant_reviews_completed_tour(self):
        book(self.past_tour, self.reviewer)

        review = self._review(self.past_tour)

        self.assertEqual(review.guide, self.guide)
        self.assertEqual(review.reviewer, self.reviewer)
        self.assertEqual(review.rating, 5)

    def test_review_without_booking(self):
        with self.assertRaises(Forbidden):
            self._review(self.past_tour)
        self.assertFalse(ReviewService.can_review(self.past_tour.pk, self.reviewer))

    def test_review_before_tour_date(self):
        book(self.future_tour, self.reviewer)

        with self.assertRaises(TourNotYetCompleted):
            self._review(self.future_tour)
        self.assertFalse(ReviewService.can_review(self.future_tour.pk, self.reviewer))

    def test_second_review(self):
        book(self.past_tour, self.reviewer)
        self.assertTrue(ReviewService.can_review(self.past_tour.pk, self.reviewer))
        self._review(self.past_tour)

        with self.assertRaises(AlreadyReviewed):
            self._review(self.past_tour, rating=3)
        self.assertFalse(ReviewService.can_review(self.past_tour.pk, self.reviewer))
        self.assertEqual(Review.objects.count(), 1)

    def test_guide_must_match_tour_creator(self):
        book(self.past_tour, self.reviewer)
        other_guide = make_user("other@example.com", Role.GUIDE)

        with self.assertRaises(InvalidInput):
            self._review(self.past_tour, guide_id=other_guide.pk)

    def test_rating_bounds_and_comment(self):
        book(self.past_tour, self.reviewer)

        for rating in (0, 6):
            with self.assertRaises(InvalidInput) as ctx:
                self._review(self.past_tour, rating=rating)
            self.assertIn("rating", ctx.exception.errors)

        with self.assertRaises(InvalidInput):
            self._review(self.past_tour, comment="   ")
        self.assertFalse(Review.objects.exists())

    def test_unknown_tour(self):
        with self.assertRaises(NotFound):
            ReviewService.create_review(999999, self.reviewer, self.guide.pk, 4, "ok")


class TourServiceTests(TestCase):

    def setUp(self):
        self.guide = make_user("guide@example.com", Role.GUIDE)
        self.other_guide = make_user("other@example.com", Role.GUIDE)
        self.admin = make_user("admin@example.com", Role.ADMIN)
        self.user = make_user("user@example.com")

    def _data(self, **overrides):
        data = {
            "title": "Harbour Kayak",
            "description": "<p>Paddle at sunset</p>",
            "price": Decimal("60.00"),
            "duration": 3,
            "date": timezone.now() + timedelta(days=10),
            "max_participants": 4,
        }
        data.update(overrides)
        return data

    def test_guide_creates_tour(self):
        tour = TourService.create_tour(self.guide, self._data())
        self.assertEqual(tour.created_by, self.guide)
        self.assertEqual(tour.max_participants, 4)

    def test_user_cannot_create_tour(self):
        with self.assertRaises(Forbidden):
            TourService.create_tour(self.user, self._data())

    def test_invalid_tour_data(self):
        with self.assertRaises(InvalidInput) as ctx:
            TourService.create_tour(self.guide, self._data(price=Decimal("-1.00")))
        self.assertIn("price", ctx.exception.errors)

    def test_only_owner_or_admin_updates(self):
        tour = make_tour(self.guide)

        with self.assertRaises(Forbidden):
            TourService.update_tour(tour.pk, self.other_guide, {"title": "Hijacked"})

        TourService.update_tour(tour.pk, self.admin, {"title": "Renamed"})
        tour.refresh_from_db()
        self.assertEqual(tour.title, "Renamed")

    def test_capacity_cannot_drop_below_bookings(self):
        tour = make_tour(self.guide, max_participants=3)
        book(tour, make_user("a@example.com"), make_user("b@example.com"))

        with self.assertRaises(InvalidInput):
            TourService.update_tour(tour.pk, self.guide, {"max_participants": 1})

        TourService.update_tour(tour.pk, self.guide, {"max_participants": 2})
        tour.refresh_from_db()
        self.assertEqual(tour.max_participants, 2)

    def test_delete_cascades(self):
        tour = make_tour(self.guide)
        book(tour, self.user)

        with self.assertRaises(Forbidden):
            TourService.delete_tour(tour.pk, self.other_guide)

        TourService.delete_tour(tour.pk, self.guide)
        self.assertFalse(Tour.objects.filter(pk=tour.pk).exists())
        self.assertFalse(Booking.objects.exists())

    def test_admin_deletes_any_tour(self):
        tour = make_tour(self.guide)
        book(tour, self.user)

        TourService.delete_tour(tour.pk, self.admin)

        self.assertFalse(Tour.objects.filter(pk=tour.pk).exists())
        self.assertFalse(Booking.objects.exists())

    def test_tours_for_creator(self):
        mine = make_tour(self.guide)
        make_tour(self.other_guide)

        self.assertEqual(list(TourService.tours_for_creator(self.guide)), [mine])
        with self.assertRaises(Forbidden):
            TourService.tours_for_creator(self.user)


class GuideStatsServiceTests(TestCase):

    def setUp(self):
        self.guide = make_user("guide@example.com", Role.GUIDE, name="Gina")
        self.participants = [make_user(f"p{i}@example.com") for i in range(3)]

    def _review(self, tour, reviewer, rating, days_ago=0):
        review = Review.objects.create(
            tour=tour, guide=self.guide, reviewer=reviewer, rating=rating, comment="Review"
        )
        Review.objects.filter(pk=review.pk).update(created_at=timezone.now() - timedelta(days=days_ago))
        return review

    def test_average_rating_rounded_to_one_decimal(self):
        tour = make_tour(self.guide, days_from_now=-1)
        for participant, rating in zip(self.participants, (5, 4, 4)):
            self._review(tour, participant, rating)

        self.assertEqual(GuideStatsService.average_rating(self.guide.pk), {
            "average_rating": 4.3,
            "total_reviews": 3,
        })

    def test_average_rating_without_reviews(self):
        self.assertEqual(GuideStatsService.average_rating(self.guide.pk), {
            "average_rating": None,
            "total_reviews": 0,
        })

    def test_reviews_newest_first(self):
        tour = make_tour(self.guide, days_from_now=-5)
        older = self._review(tour, self.participants[0], 3, days_ago=2)
        newer = self._review(tour, self.participants[1], 5, days_ago=1)

        self.assertEqual(list(GuideStatsService.reviews_for_guide(self.guide.pk)), [newer, older])

    def test_profile_counts_successful_tours(self):
        popular = make_tour(self.guide, days_from_now=-10)
        quiet = make_tour(self.guide, days_from_now=-5)
        upcoming = make_tour(self.guide, days_from_now=5)
        book(popular, *self.participants[:2])
        book(quiet, self.participants[0])
        book(upcoming, *self.participants)

        profile = GuideStatsService.profile(self.guide.pk)

        self.assertEqual(profile["name"], "Gina")
        self.assertEqual(profile["stats"]["successful_tours"], 1)
        self.assertEqual(profile["stats"]["total_completed_tours"], 2)

    def test_profile_unknown_guide(self):
        with self.assertRaises(NotFound):
            GuideStatsService.profile(987654)


class UserRoleServiceTests(TestCase):

    def setUp(self):
        self.admin = make_user("admin@example.com", Role.ADMIN)
        self.user = make_user("user@example.com")

    def test_admin_promotes_user(self):
        updated = UserRoleService.update_role(self.admin, self.user.pk, Role.GUIDE)
        self.assertEqual(updated.role, Role.GUIDE)

    def test_non_admin_cannot_change_roles(self):
        guide = make_user("guide@example.com", Role.GUIDE)
        with self.assertRaises(Forbidden):
            UserRoleService.update_role(guide, self.user.pk, Role.ADMIN)

    def test_invalid_role(self):
        with self.assertRaises(InvalidInput):
            UserRoleService.update_role(self.admin, self.user.pk, "SUPERHERO")

    def test_unknown_user(self):
        with self.assertRaises(NotFound):
            UserRoleService.update_role(self.admin, 55555, Role.GUIDE)

    def test_claim_admin_creates_account(self):
        user, created = UserRoleService.claim_admin("founder@example.com")

        self.assertTrue(created)
        self.assertEqual(user.role, Role.ADMIN)
        self.assertEqual(user.name, "founder")

    def test_claim_admin_promotes_existing(self):
        user, created = UserRoleService.claim_admin("user@example.com")

        self.assertFalse(created)
        self.assertEqual(user.pk, self.user.pk)
        self.assertEqual(User.objects.get(pk=self.user.pk).role, Role.ADMIN)

    def test_claim_admin_rejects_bad_email(self):
        with self.assertRaises(InvalidInput):
            UserRoleService.claim_admin("not-an-email")
