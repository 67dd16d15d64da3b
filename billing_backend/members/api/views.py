# members/api/views.py

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from members.api.serializers import MemberSerializer
from members.models import Member


class MemberListCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated, IsAdminUser]
    serializer_class = MemberSerializer

    @extend_schema(tags=["members"], responses=MemberSerializer(many=True))
    def get(self, request):
        qs = Member.objects.filter(is_active=True).order_by("name", "id")
        return Response(MemberSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["members"],
        request=MemberSerializer,
        responses={201: MemberSerializer},
    )
    def post(self, request):
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        member = s.save()
        return Response(MemberSerializer(member).data, status=status.HTTP_201_CREATED)
