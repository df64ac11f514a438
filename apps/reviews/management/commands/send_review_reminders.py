"""
Management command to remind reviewers of reviews that are due soon or overdue.
This should be run periodically (e.g., daily via cron job or Celery beat).
"""
from django.core.management.base import BaseCommand

from apps.reviews.tasks import run_review_reminders


class Command(BaseCommand):
    help = 'Send reminders for open reviews that are due soon or overdue'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List the reviews that would be reminded without sending anything',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']

        if dry_run:
            self.stdout.write(self.style.WARNING('Running in DRY RUN mode - no reminders will be sent'))

        result = run_review_reminders(dry_run=dry_run)

        verb = 'would be reminded' if dry_run else 'reminded'
        self.stdout.write(
            self.style.SUCCESS(f"{result['reminded']} review(s) {verb}, {result['overdue']} overdue")
        )
        if result['failed']:
            self.stdout.write(self.style.ERROR(f"{result['failed']} reminder(s) failed, see logs"))
