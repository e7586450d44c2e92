import logging

from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import views, permissions
from rest_framework.response import Response

from assessments.permissions import IsAdminRole
from cores.models import AuditLog
from .entitlements import grant_for_order
from .models import Order, Product, ProductExam
from .serializers import OrderStatusSerializer, ProductExamLinkSerializer, LinkedExamSerializer

logger = logging.getLogger(__name__)


class OrderStatusView(views.APIView):
    """
    Admin moves an order through its statuses.
    Confirming an order unlocks the exams linked to its products.
    """
    permission_classes = [IsAdminRole]

    def put(self, request, pk):
        order = get_object_or_404(Order.objects.select_related('user'), pk=pk)
        serializer = OrderStatusSerializer(order, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        order = serializer.save()

        data = dict(serializer.data)
        if order.status == Order.Status.CONFIRMED:
            data['granted_exam_ids'] = self._grant_access(request, order)
        return Response(data)

    def _grant_access(self, request, order):
        # The status change stands even if granting fails; the failure is
        # left in the audit log for manual reconciliation.
        try:
            granted = grant_for_order(order)
        except Exception as e:
            logger.exception(f"Granting exam access failed for order {order.pk}")
            AuditLog.record(
                request.user, 'GRANT_FAILED', order,
                f"Could not grant exams for order {order.pk} to user {order.user_id}: {e}",
            )
            return []

        if granted:
            logger.info(f"Granted exams {granted} for order {order.pk} to user {order.user_id}")
            AuditLog.record(request.user, 'GRANT', order, f"Granted exams {granted} to user {order.user_id}")
        return granted


class ProductExamLinkView(views.APIView):
    """
    Replaces the exams a product unlocks.
    Payload: { "product_id": 1, "exam_ids": [1, 2] }
    """
    permission_classes = [IsAdminRole]

    def post(self, request):
        serializer = ProductExamLinkSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product = serializer.validated_data['product']
        exams = serializer.validated_data['exams']

        with transaction.atomic():
            ProductExam.objects.filter(product=product).delete()
            ProductExam.objects.bulk_create([ProductExam(product=product, exam=exam) for exam in exams])

        return Response({"status": "Product exams updated", "count": len(exams)})


class ProductExamsView(views.APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request, pk):
        product = get_object_or_404(Product, pk=pk)
        exams = product.exams.filter(is_active=True).order_by('id')
        return Response(LinkedExamSerializer(exams, many=True).data)
