"""
Management command to install the default email templates.
Run with: python manage.py seed_email_templates [--overwrite]
"""
from django.core.management.base import BaseCommand

from apps.notifications.defaults import DEFAULT_EMAIL_TEMPLATES
from apps.notifications.models import EmailTemplate


class Command(BaseCommand):
    help = 'Install the default email templates'

    def add_arguments(self, parser):
        parser.add_argument(
            '--overwrite',
            action='store_true',
            help='Replace the content of templates that already exist',
        )

    def handle(self, *args, **options):
        created_count = 0
        updated_count = 0

        for template_data in DEFAULT_EMAIL_TEMPLATES:
            data = dict(template_data)
            name = data.pop('name')

            if options['overwrite']:
                _, created = EmailTemplate.objects.update_or_create(name=name, defaults=data)
            else:
                _, created = EmailTemplate.objects.get_or_create(name=name, defaults=data)

            if created:
                created_count += 1
                self.stdout.write(self.style.SUCCESS(f"Created template: {name}"))
            elif options['overwrite']:
                updated_count += 1
                self.stdout.write(self.style.SUCCESS(f"Updated template: {name}"))

        self.stdout.write(
            self.style.SUCCESS(f"\nSummary: {created_count} created, {updated_count} updated")
        )
