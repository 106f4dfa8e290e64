"""URL routing for the notification queue."""

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import NotificationEventViewSet, ProcessQueueView, StaffAlertViewSet

router = DefaultRouter()
router.register(r'events', NotificationEventViewSet, basename='notification-event')
router.register(r'alerts', StaffAlertViewSet, basename='staff-alert')

urlpatterns = [
    path('queue/process/', ProcessQueueView.as_view(), name='notification-queue-process'),
    path('', include(router.urls)),
]
