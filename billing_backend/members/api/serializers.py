# members/api/serializers.py

from rest_framework import serializers

from members.models import Member


class MemberSerializer(serializers.ModelSerializer):
    class Meta:
        model = Member
        fields = ("id", "name", "email", "is_active", "created_at")
        read_only_fields = ("id", "created_at")
