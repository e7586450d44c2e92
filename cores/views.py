from rest_framework import generics
from rest_framework.views import APIView
from rest_framework.response import Response

from assessments.permissions import IsAdminRole
from .models import PlatformSetting, AuditLog
from .serializers import PlatformSettingSerializer, AuditLogSerializer


class PlatformSettingView(APIView):
    """Scoring penalty, submit grace period and branding, editable by admins."""
    permission_classes = [IsAdminRole]

    def get(self, request):
        return Response(PlatformSettingSerializer(PlatformSetting.load()).data)

    def put(self, request):
        config = PlatformSetting.load()
        serializer = PlatformSettingSerializer(config, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()

        changed = ', '.join(sorted(serializer.validated_data)) or 'nothing'
        AuditLog.record(request.user, 'SETTINGS', config, f"Updated platform settings: {changed}")
        return Response(serializer.data)


class AuditLogListView(generics.ListAPIView):
    serializer_class = AuditLogSerializer
    permission_classes = [IsAdminRole]
    pagination_class = None

    def get_queryset(self):
        queryset = AuditLog.objects.select_related('actor').order_by('-timestamp', '-id')
        action = self.request.query_params.get('action')
        if action:
            queryset = queryset.filter(action=action)
        return queryset
