"""
Payment models for the Journal Portal.
Article processing charge (APC) payments.
"""
import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone


def generate_invoice_number(submission_id, now=None):
    """``INV-{milliseconds}-{first 8 chars of the submission id}``."""
    now = now or timezone.now()
    return f"INV-{int(now.timestamp() * 1000)}-{str(submission_id)[:8].upper()}"


class Payment(models.Model):
    """
    One APC payment attempt. A failed attempt is never reused; retrying
    creates a new row.
    """
    STATUS_PENDING = 'PENDING'
    STATUS_PAID = 'PAID'
    STATUS_FAILED = 'FAILED'
    STATUS_REFUNDED = 'REFUNDED'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_PAID, 'Paid'),
        (STATUS_FAILED, 'Failed'),
        (STATUS_REFUNDED, 'Refunded'),
    ]

    # Allowed status changes on one row
    STATUS_TRANSITIONS = {
        STATUS_PENDING: (STATUS_PAID, STATUS_FAILED, STATUS_REFUNDED),
        STATUS_PAID: (STATUS_REFUNDED,),
        STATUS_FAILED: (),
        STATUS_REFUNDED: (),
    }

    METHOD_CHOICES = [
        ('CARD', 'Card'),
        ('BANK_TRANSFER', 'Bank Transfer'),
        ('OTHER', 'Other'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    submission = models.ForeignKey(
        'submissions.Submission',
        on_delete=models.CASCADE,
        related_name='payments'
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='payments'
    )
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING)
    stripe_payment_id = models.CharField(max_length=255, blank=True, db_index=True)
    invoice_number = models.CharField(max_length=64, unique=True)
    payment_method = models.CharField(max_length=20, choices=METHOD_CHOICES, default='CARD')
    proof_file = models.FileField(upload_to='payments/proofs/%Y/%m/', null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['submission', 'status']),
            models.Index(fields=['status', 'created_at']),
        ]

    def __str__(self):
        return f"{self.invoice_number} {self.currency} {self.amount} ({self.status})"

    def can_move_to(self, status):
        return status in self.STATUS_TRANSITIONS[self.status]
