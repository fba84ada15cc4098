# =============================================================================
# URLS – Bookings App
# =============================================================================
from django.urls import path, include
from . import views

app_name = "bookings"

urlpatterns = [
    # ===============================
    # Uploads
    # ===============================
    path("api/uploads/tour-image/", views.upload_tour_image, name="upload_tour_image"),

    # ===============================
    # API (tours, bookings, reviews, guides, users)
    # ===============================
    path("api/", include("bookings.api.urls")),

    # ===============================
    # Monitoring
    # ===============================
    path("health/", views.health_check, name="health_check"),
]
