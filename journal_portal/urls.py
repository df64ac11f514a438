"""
URL configuration for journal_portal project.

Academic journal management: submission, peer review, editorial
decisions, APC payments and publication.
"""
from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView, SpectacularRedocView

from apps.publication.feeds import LatestArticlesFeed

urlpatterns = [
    # Django admin
    path('django-admin/', admin.site.urls),

    # API Documentation
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),

    # API endpoints
    path('api/v1/', include('apps.users.urls')),
    path('api/v1/submissions/', include('apps.submissions.urls')),
    path('api/v1/editor/', include('apps.submissions.editor_urls')),
    path('api/v1/reviews/', include('apps.reviews.urls')),
    path('api/v1/payments/', include('apps.payments.urls')),
    path('api/v1/publication/', include('apps.publication.urls')),
    path('api/v1/public/', include('apps.publication.public_urls')),
    path('api/v1/notifications/', include('apps.notifications.urls')),
    path('api/v1/admin/', include('apps.analytics.urls')),

    # Feeds
    path('feed/rss/', LatestArticlesFeed(), name='feed-rss'),
]

# Serve media files in development
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
