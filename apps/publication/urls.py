"""
Admin publication URLs (mounted at ``publication/``).
"""
from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import (
    ReadyToPublishView, PublicationDestinationsView, PublicationPreviewView,
    PublishView, UnpublishView, IssueViewSet, ConferenceViewSet,
)

router = SimpleRouter()
router.register(r'issues', IssueViewSet, basename='issue')
router.register(r'conferences', ConferenceViewSet, basename='conference')

urlpatterns = [
    path('ready/', ReadyToPublishView.as_view(), name='publication-ready'),
    path('destinations/', PublicationDestinationsView.as_view(), name='publication-destinations'),
    path('preview/<uuid:submission_id>/', PublicationPreviewView.as_view(), name='publication-preview'),
    path('publish/<uuid:submission_id>/', PublishView.as_view(), name='publication-publish'),
    path('unpublish/<uuid:submission_id>/', UnpublishView.as_view(), name='publication-unpublish'),
    path('', include(router.urls)),
]
