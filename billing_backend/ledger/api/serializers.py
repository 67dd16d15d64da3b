# ledger/api/serializers.py

from rest_framework import serializers

from ledger.models import Invoice, Payment


class InvoiceCreateSerializer(serializers.Serializer):
    member_id = serializers.IntegerField()
    invoice_number = serializers.CharField(max_length=64)
    issue_date = serializers.DateField()
    due_date = serializers.DateField()
    total_amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0)
    remarks = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if attrs["due_date"] < attrs["issue_date"]:
            raise serializers.ValidationError(
                {"due_date": "due_date cannot be before issue_date"}
            )
        return attrs


class InvoiceSerializer(serializers.ModelSerializer):
    member_name = serializers.CharField(source="member.name", read_only=True)
    remaining_amount = serializers.DecimalField(
        max_digits=14, decimal_places=2, read_only=True
    )
    recovery_rate = serializers.DecimalField(
        max_digits=4, decimal_places=1, read_only=True
    )
    is_overdue = serializers.BooleanField(read_only=True)

    class Meta:
        model = Invoice
        fields = (
            "id",
            "invoice_number",
            "member",
            "member_name",
            "issue_date",
            "due_date",
            "total_amount",
            "paid_amount",
            "remaining_amount",
            "status",
            "recovery_rate",
            "last_paid_at",
            "is_overdue",
            "remarks",
            "created_at",
        )
        read_only_fields = fields


class PaymentCreateSerializer(serializers.Serializer):
    member_id = serializers.IntegerField()
    payment_date = serializers.DateField()
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    payer_name = serializers.CharField(required=False, allow_blank=True, default="")
    method = serializers.ChoiceField(
        choices=Payment.METHOD_CHOICES, default=Payment.METHOD_BANK_TRANSFER
    )


class PaymentSerializer(serializers.ModelSerializer):
    member_name = serializers.CharField(source="member.name", read_only=True)
    unallocated_amount = serializers.DecimalField(
        max_digits=14, decimal_places=2, read_only=True
    )

    class Meta:
        model = Payment
        fields = (
            "id",
            "member",
            "member_name",
            "payment_date",
            "amount",
            "allocated_amount",
            "unallocated_amount",
            "status",
            "payer_name",
            "method",
            "created_at",
        )
        read_only_fields = fields


class AllocationCreateSerializer(serializers.Serializer):
    # amounts stay raw so the service owns amount validation (InvalidAmount)
    invoice_id = serializers.IntegerField()
    amount = serializers.CharField()


class AllocationLineSerializer(serializers.Serializer):
    invoice_id = serializers.IntegerField()
    amount = serializers.CharField()


class AllocationReplaceSerializer(serializers.Serializer):
    lines = AllocationLineSerializer(many=True, allow_empty=True)


class ReminderCreateSerializer(serializers.Serializer):
    # channel / tone stay raw so the service owns their validation (InvalidEntity)
    channel = serializers.CharField()
    tone = serializers.CharField(required=False, allow_blank=True, default="")
    title = serializers.CharField(required=False, allow_blank=True, default="", max_length=200)
    memo = serializers.CharField(required=False, allow_blank=True, default="")
    next_action_date = serializers.DateField(required=False, allow_null=True, default=None)
    subject = serializers.CharField(required=False, allow_blank=True, default="", max_length=255)
    body_text = serializers.CharField(required=False, allow_blank=True, default="")
    reminded_at = serializers.DateTimeField(required=False, allow_null=True, default=None)
