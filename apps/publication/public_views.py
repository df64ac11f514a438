"""
Public read-only views for the journal website. No authentication.
"""
import logging

from django.core.files.storage import default_storage
from django.db.models import F, Q, Sum
from django.http import FileResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from drf_spectacular.utils import extend_schema, OpenApiParameter
from rest_framework import generics, permissions
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Issue, Article, PublicationSettings
from .serializers import IssueSerializer, IssueDetailSerializer, ArticleSerializer, ArticleListSerializer
from .services import public_articles

logger = logging.getLogger(__name__)


class CurrentIssueView(APIView):
    permission_classes = [permissions.AllowAny]

    @extend_schema(summary="Current issue with its articles", responses={200: IssueDetailSerializer})
    def get(self, request):
        issue = Issue.objects.filter(is_current=True).first()
        if issue is None:
            raise NotFound('No current issue found.')
        return Response(IssueDetailSerializer(issue).data)


@extend_schema(summary="Archive of published issues")
class ArchiveView(generics.ListAPIView):
    serializer_class = IssueSerializer
    permission_classes = [permissions.AllowAny]

    def get_queryset(self):
        return Issue.objects.filter(published_at__isnull=False).order_by('-volume', '-number')


class IssueByNumberView(APIView):
    permission_classes = [permissions.AllowAny]

    @extend_schema(summary="Issue by volume and number", responses={200: IssueDetailSerializer})
    def get(self, request, volume, number):
        issue = get_object_or_404(Issue, volume=volume, number=number)
        return Response(IssueDetailSerializer(issue).data)


class ArticleByDoiView(APIView):
    permission_classes = [permissions.AllowAny]

    @extend_schema(summary="Article by DOI (counts a view)", responses={200: ArticleSerializer})
    def get(self, request, doi):
        article = get_object_or_404(public_articles(), doi=doi)
        Article.objects.filter(pk=article.pk).update(views=F('views') + 1)
        article.refresh_from_db(fields=['views'])
        return Response(ArticleSerializer(article).data)


class ArticleDownloadView(APIView):
    permission_classes = [permissions.AllowAny]

    @extend_schema(summary="Download article PDF (counts a download)", responses={200: None})
    def get(self, request, doi):
        article = get_object_or_404(public_articles(), doi=doi)
        display = PublicationSettings.objects.filter(submission_id=article.submission_id).first()
        if display is not None:
            if not display.allow_download:
                raise PermissionDenied('Downloads are disabled for this article.')
            if display.embargo_until and display.embargo_until > timezone.now():
                raise PermissionDenied(f"This article is under embargo until {display.embargo_until:%Y-%m-%d}.")
        if not article.pdf_path or not default_storage.exists(article.pdf_path):
            raise NotFound('No PDF is available for this article.')

        Article.objects.filter(pk=article.pk).update(downloads=F('downloads') + 1)
        filename = f"{article.doi.replace('/', '_')}.pdf"
        return FileResponse(default_storage.open(article.pdf_path, 'rb'), as_attachment=True, filename=filename)


@extend_schema(
    summary="Search published articles",
    parameters=[
        OpenApiParameter(name='q', description='Title, abstract or keyword', required=False, type=str),
        OpenApiParameter(name='author', description='Author last name', required=False, type=str),
        OpenApiParameter(name='year', description='Publication year', required=False, type=int),
    ],
)
class ArticleSearchView(generics.ListAPIView):
    serializer_class = ArticleListSerializer
    permission_classes = [permissions.AllowAny]

    def get_queryset(self):
        queryset = public_articles()
        params = self.request.query_params
        query = params.get('q', '').strip()
        if query:
            queryset = queryset.filter(
                Q(title__icontains=query) | Q(abstract__icontains=query) | Q(keywords__icontains=query)
            )
        author = params.get('author', '').strip()
        if author:
            queryset = queryset.filter(
                Q(submission__author__last_name__icontains=author)
                | Q(submission__coauthors__last_name__icontains=author)
            ).distinct()
        year = params.get('year', '').strip()
        if year.isdigit():
            queryset = queryset.filter(published_at__year=int(year))
        return queryset.order_by('-published_at')


class JournalStatsView(APIView):
    permission_classes = [permissions.AllowAny]

    @extend_schema(summary="Public journal statistics")
    def get(self, request):
        articles = public_articles()
        totals = articles.aggregate(views=Sum('views'), downloads=Sum('downloads'))
        return Response({
            'total_articles': articles.count(),
            'total_issues': Issue.objects.filter(published_at__isnull=False).count(),
            'current_year_articles': articles.filter(published_at__year=timezone.now().year).count(),
            'total_views': totals['views'] or 0,
            'total_downloads': totals['downloads'] or 0,
            'recent_articles': ArticleListSerializer(articles.order_by('-published_at')[:5], many=True).data,
        })
