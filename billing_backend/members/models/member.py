# members/models/member.py

from django.core.exceptions import ValidationError
from django.db import models


class Member(models.Model):
    """
    Customer master.

    Referenced (PROTECT) by invoices and payments; report keyword search
    matches against `name`.
    """

    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True, default="")

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name", "id"]
        indexes = [
            models.Index(fields=["name"], name="member_name_idx"),
            models.Index(fields=["is_active"], name="member_is_active_idx"),
        ]

    def clean(self):
        if not (self.name or "").strip():
            raise ValidationError({"name": "name is required"})

    def save(self, *args, **kwargs):
        if self.name is not None:
            self.name = self.name.strip()

        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        return self.name
