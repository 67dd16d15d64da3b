# members/tests/test_members_api.py

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from members.models import Member

User = get_user_model()


class MemberModelTests(TestCase):
    def test_name_is_stripped_and_required(self):
        member = Member.objects.create(name="  Kilo Mart  ")
        self.assertEqual(member.name, "Kilo Mart")

        with self.assertRaises(ValidationError):
            Member.objects.create(name="   ")


class MemberApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(
            user=User.objects.create_user(username="staff", password="pass12345", is_staff=True)
        )
        self.url = reverse("members")

    def test_create_and_list(self):
        res = self.client.post(self.url, {"name": "Lima Stores"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)

        Member.objects.create(name="Alpha Co")
        Member.objects.create(name="Dormant Ltd", is_active=False)

        res = self.client.get(self.url)
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual([m["name"] for m in res.data], ["Alpha Co", "Lima Stores"])

    def test_non_staff_forbidden(self):
        client = APIClient()
        client.force_authenticate(user=User.objects.create_user(username="u", password="pass12345"))
        self.assertEqual(client.get(self.url).status_code, status.HTTP_403_FORBIDDEN)
