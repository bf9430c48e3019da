"""
URL mappings for the registry API.

Trailing slashes are deliberately omitted, matching the rest of the
platform's API.
"""
from django.urls import path, include

from .views import health
from .views.dedupe import check_duplicates, merge, duplicate_stats


urlpatterns = [
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz),
    # Duplicate detection & merge
    path('api/patients/duplicates/check', check_duplicates, name='patient_duplicates_check'),
    path('api/patients/merge', merge, name='patient_merge'),
    path('api/patients/<uuid:pk>/duplicate-stats', duplicate_stats, name='patient_duplicate_stats'),
]
