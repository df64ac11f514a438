"""
Serializers for APC payments.
"""
from rest_framework import serializers

from apps.submissions.serializers import validate_upload
from .models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    submission_title = serializers.CharField(source='submission.title', read_only=True)
    user_email = serializers.EmailField(source='user.email', read_only=True)
    proof_url = serializers.SerializerMethodField()

    class Meta:
        model = Payment
        fields = (
            'id', 'submission', 'submission_title', 'user', 'user_email', 'amount',
            'currency', 'status', 'stripe_payment_id', 'invoice_number',
            'payment_method', 'proof_url', 'paid_at', 'created_at', 'updated_at'
        )
        read_only_fields = fields

    def get_proof_url(self, obj):
        if obj.proof_file:
            request = self.context.get('request')
            if request:
                return request.build_absolute_uri(obj.proof_file.url)
            return obj.proof_file.url
        return None


class PaymentIntentResponseSerializer(serializers.Serializer):
    client_secret = serializers.CharField()
    payment_id = serializers.UUIDField()
    invoice_number = serializers.CharField()
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    currency = serializers.CharField()


class ConfirmPaymentSerializer(serializers.Serializer):
    payment_intent_id = serializers.CharField(max_length=255)


class PaymentProofSerializer(serializers.Serializer):
    proof = serializers.FileField(validators=[validate_upload])


class MarkPaidSerializer(serializers.Serializer):
    payment_method = serializers.ChoiceField(choices=Payment.METHOD_CHOICES, required=False, default='')
