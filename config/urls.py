"""URL configuration for the hotel notification service.

The `urlpatterns` list routes URLs to views. It includes the Django admin
and the notification queue API.
"""
from django.contrib import admin  # type: ignore
from django.urls import path, include  # type: ignore

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/notifications/', include('apps.notifications.urls')),
]
