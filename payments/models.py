# payments/models.py
from django.db import models
from django.conf import settings
from exams.models import Exam

class Product(models.Model):
    name = models.CharField(max_length=255)
    slug = models.SlugField(unique=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    is_active = models.BooleanField(default=True)
    exams = models.ManyToManyField(Exam, through='ProductExam', related_name='products', blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name

class ProductExam(models.Model):
    """Which exams a purchased product unlocks."""
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='product_exams')
    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name='product_links')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('product', 'exam')

class Order(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        CONFIRMED = "confirmed", "Confirmed"
        SHIPPED = "shipped", "Shipped"
        DELIVERED = "delivered", "Delivered"
        CANCELLED = "cancelled", "Cancelled"

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='orders')
    total_amount = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Order {self.pk} - {self.user} - {self.status}"

class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name='order_items')
    quantity = models.PositiveIntegerField(default=1)
    price = models.DecimalField(max_digits=10, decimal_places=2)

class UserExamAccess(models.Model):
    """Entitlement: lets one user start and view one exam."""
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='exam_access')
    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name='user_access')
    order = models.ForeignKey(Order, on_delete=models.SET_NULL, null=True, blank=True, related_name='exam_grants')
    access_granted_at = models.DateTimeField(auto_now_add=True)
    expires_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        indexes = [models.Index(fields=['user', 'exam'], name='payments_access_user_exam_idx')]

    def __str__(self):
        return f"{self.user} -> {self.exam}"
