"""
Celery application for the Journal Portal.
"""
import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'journal_portal.settings')

app = Celery('journal_portal')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
