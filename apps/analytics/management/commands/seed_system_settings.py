"""
Management command to store the journal defaults as editable SystemSetting rows.
Run with: python manage.py seed_system_settings [--dry-run]
"""
from decimal import Decimal

from django.core.management.base import BaseCommand

from apps.common.config import JournalConfig
from apps.common.models import SystemSetting


def _value_type(value):
    if isinstance(value, bool):
        return SystemSetting.TYPE_BOOLEAN
    if isinstance(value, (int, Decimal)):
        return SystemSetting.TYPE_NUMBER
    return SystemSetting.TYPE_STRING


class Command(BaseCommand):
    help = 'Install the journal configuration defaults as system settings'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show the settings that would be created without saving them',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        if dry_run:
            self.stdout.write(self.style.WARNING('Running in DRY RUN mode - no settings will be saved'))

        existing = set(SystemSetting.objects.values_list('key', flat=True))
        created_count = 0

        for key, value in JournalConfig.defaults().as_dict().items():
            if key in existing:
                self.stdout.write(f"Skipping existing setting: {key}")
                continue
            created_count += 1
            if dry_run:
                self.stdout.write(f"Would create {key}={value}")
                continue
            SystemSetting.objects.create(
                key=key,
                value=str(value),
                value_type=_value_type(value),
                description=key.replace('_', ' ').capitalize(),
            )
            self.stdout.write(self.style.SUCCESS(f"Created setting: {key}={value}"))

        verb = 'would be created' if dry_run else 'created'
        self.stdout.write(self.style.SUCCESS(f"\nSummary: {created_count} setting(s) {verb}"))
