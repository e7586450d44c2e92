from rest_framework import serializers

from exams.models import Exam
from .models import Order, Product


class OrderStatusSerializer(serializers.ModelSerializer):
    class Meta:
        model = Order
        fields = ['id', 'user', 'total_amount', 'status', 'created_at', 'updated_at']
        read_only_fields = ['id', 'user', 'total_amount', 'created_at', 'updated_at']


class ProductExamLinkSerializer(serializers.Serializer):
    product_id = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all(), source='product')
    exam_ids = serializers.PrimaryKeyRelatedField(queryset=Exam.objects.all(), many=True, source='exams')


class LinkedExamSerializer(serializers.ModelSerializer):
    class Meta:
        model = Exam
        fields = ['id', 'name', 'subject', 'duration_minutes', 'total_questions']
