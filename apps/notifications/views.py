"""API views for the notification queue."""

from __future__ import annotations

from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from .models import NotificationEvent, StaffAlert
from .serializers import (
    NotificationEventCreateSerializer,
    NotificationEventSerializer,
    StaffAlertSerializer,
)
from .services import resubmit_event
from .worker import QueueWorker


class NotificationEventViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Insert events and inspect their delivery state. Events are never edited."""

    queryset = NotificationEvent.objects.all()
    permission_classes = [permissions.IsAdminUser]
    filterset_fields = ["tenant", "status", "event_type"]

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return NotificationEventCreateSerializer
        return NotificationEventSerializer

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        event = serializer.save()
        read_serializer = NotificationEventSerializer(event, context=self.get_serializer_context())
        return Response(read_serializer.data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def resubmit(self, request, pk=None):  # type: ignore
        event = self.get_object()
        if not event.is_terminal:
            return Response(
                {"detail": "Only completed or failed events can be resubmitted."},
                status=status.HTTP_409_CONFLICT,
            )
        copy = resubmit_event(event)
        return Response(NotificationEventSerializer(copy).data, status=status.HTTP_201_CREATED)


class ProcessQueueView(APIView):
    """Runs one worker batch; lets any external scheduler trigger the queue."""

    permission_classes = [permissions.IsAdminUser]

    def post(self, request):  # type: ignore
        limit = request.data.get("limit")
        try:
            limit = int(limit) if limit not in (None, "") else None
        except (TypeError, ValueError):
            limit = 0
        if limit is not None and limit < 1:
            return Response({"detail": "limit must be a positive integer."}, status=status.HTTP_400_BAD_REQUEST)

        worker = QueueWorker()
        try:
            report = worker.run_batch(limit=limit)
        finally:
            worker.close()
        return Response(
            {
                "success": True,
                "processed": report.claimed,
                "message": "Notification queue processed successfully",
                **report.as_dict(),
            },
            status=status.HTTP_200_OK,
        )


class StaffAlertViewSet(viewsets.ReadOnlyModelViewSet):
    """In-app alerts created by the queue."""

    queryset = StaffAlert.objects.all()
    serializer_class = StaffAlertSerializer
    permission_classes = [permissions.IsAdminUser]
    filterset_fields = ["tenant", "recipient_type", "is_read"]

    @action(detail=True, methods=["post"])
    def mark_read(self, request, pk=None):  # type: ignore
        alert = self.get_object()
        alert.is_read = True
        alert.save(update_fields=["is_read"])
        return Response({"status": "read"}, status=status.HTTP_200_OK)
