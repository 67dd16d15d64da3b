# members/api/urls.py

from django.urls import path

from members.api.views import MemberListCreateView

urlpatterns = [
    path("", MemberListCreateView.as_view(), name="members"),
]
