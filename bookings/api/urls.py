from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import (
    BookingViewSet, GuideViewSet, ReviewViewSet, TourViewSet, UserViewSet
)

router = DefaultRouter()
router.register(r'tours', TourViewSet)
router.register(r'bookings', BookingViewSet, basename='booking')
router.register(r'reviews', ReviewViewSet, basename='review')
router.register(r'guides', GuideViewSet, basename='guide')
router.register(r'users', UserViewSet)

urlpatterns = [
    path('', include(router.urls)),
]
