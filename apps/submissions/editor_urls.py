"""
URL configuration for the editor API (mounted at ``editor/``).
"""
from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .editor_views import EditorSubmissionViewSet, EditorReviewViewSet, EditorStatsView

router = SimpleRouter()
router.register(r'submissions', EditorSubmissionViewSet, basename='editor-submission')
router.register(r'reviews', EditorReviewViewSet, basename='editor-review')

urlpatterns = [
    path('stats/', EditorStatsView.as_view(), name='editor-stats'),
    path('', include(router.urls)),
]
