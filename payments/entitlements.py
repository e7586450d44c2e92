"""Entitlement gate: who may start or view which exam."""
import logging

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from exams.models import Exam
from .models import ProductExam, UserExamAccess

logger = logging.getLogger(__name__)


def _live_grants(user):
    now = timezone.now()
    return UserExamAccess.objects.filter(user=user).filter(Q(expires_at__isnull=True) | Q(expires_at__gt=now))


def has_access(user, exam_id) -> bool:
    if user is None or not user.is_authenticated:
        return False
    if user.is_admin:
        return True
    return _live_grants(user).filter(exam_id=exam_id).exists()


def grant(user, exam, order=None, expires_at=None) -> UserExamAccess:
    access = UserExamAccess.objects.create(user=user, exam=exam, order=order, expires_at=expires_at)
    logger.info(f"Granted exam {exam.pk} to user {user.pk} (order {getattr(order, 'pk', None)})")
    return access


def grant_for_order(order):
    """Grant every exam linked to the order's products that the buyer lacks.

    Runs in a savepoint: either all missing grants are written or none.
    Returns the ids of the exams granted by this call.
    """
    buyer = order.user
    granted = []
    links = (
        ProductExam.objects
        .filter(product__order_items__order=order)
        .select_related('exam')
        .order_by('id')
    )
    with transaction.atomic():
        for link in links:
            if link.exam_id in granted or has_access(buyer, link.exam_id):
                continue
            grant(buyer, link.exam, order=order)
            granted.append(link.exam_id)
    return granted


def accessible_exams(user):
    if user is None or not user.is_authenticated:
        return Exam.objects.none()
    if user.is_admin:
        return Exam.objects.filter(is_active=True)
    exam_ids = _live_grants(user).values('exam_id')
    return Exam.objects.filter(is_active=True, id__in=exam_ids)
