"""
RSS feed of the latest published articles.
"""
from django.conf import settings
from django.contrib.syndication.views import Feed

from apps.common.config import JournalConfig
from .services import latest_articles


class LatestArticlesFeed(Feed):

    def get_object(self, request, *args, **kwargs):
        return JournalConfig.load()

    def title(self, config):
        return config.journal_name

    def description(self, config):
        return f"Latest articles published in {config.journal_name}"

    def link(self, config):
        return settings.FRONTEND_URL

    def items(self, config):
        return latest_articles()

    def item_title(self, article):
        return article.title

    def item_description(self, article):
        return article.abstract

    def item_link(self, article):
        return f"{settings.FRONTEND_URL}/article/{article.doi}"

    def item_guid(self, article):
        return f"https://doi.org/{article.doi}"

    item_guid_is_permalink = True

    def item_author_name(self, article):
        return article.author_names

    def item_pubdate(self, article):
        return article.published_at

    def item_categories(self, article):
        return article.keywords
