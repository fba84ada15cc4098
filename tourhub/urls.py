# =============================================================================
# URLS – Project Level (tourhub/urls.py)
# =============================================================================
from django.urls import path, include

urlpatterns = [
    # ===============================
    # 📦 App Routes
    # ===============================
    path("", include(("bookings.urls", "bookings"), namespace="bookings")),
]
