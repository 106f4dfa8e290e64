"""Tenant models: hotels and their staff directory."""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Hotel(models.Model):
    """A hotel (tenant). All notification data is scoped by it."""

    name = models.CharField(max_length=255)
    front_desk_phone = models.CharField(max_length=32, blank=True)
    front_desk_email = models.EmailField(blank=True)
    notification_preferences = models.JSONField(default=dict, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Hotel")
        verbose_name_plural = _("Hotels")
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class StaffMember(models.Model):
    """Hotel employee who can receive operational notifications."""

    class Role(models.TextChoices):
        FRONT_DESK = "front_desk", _("Front desk")
        MANAGER = "manager", _("Manager")
        HOUSEKEEPING = "housekeeping", _("Housekeeping")

    hotel = models.ForeignKey(Hotel, on_delete=models.CASCADE, related_name="staff")
    full_name = models.CharField(max_length=255)
    role = models.CharField(max_length=32, choices=Role.choices)
    phone = models.CharField(max_length=32, blank=True)
    email = models.EmailField(blank=True)
    push_token = models.CharField(max_length=255, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Staff member")
        verbose_name_plural = _("Staff members")
        ordering = ["id"]
        indexes = [
            models.Index(fields=["hotel", "role", "is_active"], name="staff_hotel_role_active_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.full_name} ({self.get_role_display()})"
