"""
Public journal website URLs (mounted at ``public/``).
"""
from django.urls import path

from .public_views import (
    CurrentIssueView, ArchiveView, IssueByNumberView, ArticleByDoiView,
    ArticleDownloadView, ArticleSearchView, JournalStatsView,
)

urlpatterns = [
    path('current-issue/', CurrentIssueView.as_view(), name='public-current-issue'),
    path('archive/', ArchiveView.as_view(), name='public-archive'),
    path('issues/<int:volume>/<int:number>/', IssueByNumberView.as_view(), name='public-issue'),
    path('search/', ArticleSearchView.as_view(), name='public-search'),
    path('stats/', JournalStatsView.as_view(), name='public-stats'),
    path('articles/<path:doi>/download/', ArticleDownloadView.as_view(), name='public-article-download'),
    path('articles/<path:doi>/', ArticleByDoiView.as_view(), name='public-article'),
]
