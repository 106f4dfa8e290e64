"""Admin registration for hotels."""

from __future__ import annotations

from django.contrib import admin

from .models import Hotel, StaffMember


class StaffMemberInline(admin.TabularInline):
    model = StaffMember
    extra = 0
    fields = ("full_name", "role", "phone", "email", "is_active")


@admin.register(Hotel)
class HotelAdmin(admin.ModelAdmin):
    list_display = ("name", "front_desk_phone", "front_desk_email", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("name", "front_desk_email")
    inlines = [StaffMemberInline]


@admin.register(StaffMember)
class StaffMemberAdmin(admin.ModelAdmin):
    list_display = ("full_name", "hotel", "role", "phone", "email", "is_active")
    list_filter = ("role", "is_active")
    search_fields = ("full_name", "email", "phone", "hotel__name")
