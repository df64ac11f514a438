from django.contrib import admin

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['invoice_number', 'submission', 'user', 'amount', 'currency', 'status', 'paid_at']
    list_filter = ['status', 'payment_method', 'currency']
    search_fields = ['invoice_number', 'stripe_payment_id', 'submission__title', 'user__email']
    readonly_fields = ['stripe_payment_id', 'invoice_number', 'paid_at', 'created_at', 'updated_at']
