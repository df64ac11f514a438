"""
Shared fixtures for the app test suites.
"""
import dataclasses
import uuid
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone
from rest_framework_simplejwt.tokens import RefreshToken

from apps.common.config import JournalConfig
from apps.payments.models import Payment, generate_invoice_number
from apps.reviews.models import Review
from apps.submissions.models import Submission, SubmissionFile

User = get_user_model()


def make_user(role=User.ROLE_AUTHOR, email=None, **extra):
    email = email or f"{role.lower()}-{uuid.uuid4().hex[:8]}@example.com"
    extra.setdefault('first_name', role.title())
    extra.setdefault('last_name', 'Tester')
    return User.objects.create_user(email=email, password='testpass123', role=role, **extra)


def authenticate(client, user):
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')


def make_config(**overrides):
    return dataclasses.replace(JournalConfig.defaults(), **overrides)


def pdf_upload(name='manuscript.pdf', content=b'%PDF-1.4 test manuscript'):
    return SimpleUploadedFile(name, content, content_type='application/pdf')


def make_submission(author, status=Submission.STATUS_DRAFT, with_file=True, **fields):
    fields.setdefault('title', 'Deep Learning for Soil Moisture Estimation')
    fields.setdefault('abstract', 'We estimate soil moisture from satellite imagery.')
    fields.setdefault('keywords', ['soil', 'remote sensing'])
    fields.setdefault('manuscript_type', 'RESEARCH_ARTICLE')
    submission = Submission.objects.create(author=author, status=status, **fields)
    if with_file:
        add_file(submission, author)
    return submission


def add_file(submission, user, name='manuscript.pdf', is_main_file=False):
    return SubmissionFile.objects.create(
        submission=submission,
        file=pdf_upload(name),
        original_name=name,
        file_type='MANUSCRIPT',
        file_size=24,
        is_main_file=is_main_file,
        uploaded_by=user,
    )


def make_review(submission, reviewer, status=Review.STATUS_PENDING, due_in_days=21, **fields):
    now = timezone.now()
    if status == Review.STATUS_COMPLETED:
        fields.setdefault('recommendation', 'ACCEPT')
        fields.setdefault('rating', 4)
        fields.setdefault('author_comments', 'Sound methodology.')
        fields.setdefault('submitted_at', now)
    return Review.objects.create(
        submission=submission,
        reviewer=reviewer,
        status=status,
        invited_at=now - timedelta(days=1),
        due_date=now + timedelta(days=due_in_days),
        **fields
    )


def complete_reviews(submission, count=2):
    return [
        make_review(submission, make_user(User.ROLE_REVIEWER), status=Review.STATUS_COMPLETED)
        for _ in range(count)
    ]


def make_payment(submission, status=Payment.STATUS_PAID, amount=Decimal('299.00'), **fields):
    fields.setdefault('invoice_number', generate_invoice_number(uuid.uuid4()))
    if status == Payment.STATUS_PAID:
        fields.setdefault('paid_at', timezone.now())
    return Payment.objects.create(
        submission=submission,
        user=submission.author,
        amount=amount,
        currency='INR',
        status=status,
        **fields
    )
