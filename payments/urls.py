from django.urls import path
from .views import OrderStatusView, ProductExamLinkView, ProductExamsView

urlpatterns = [
    # Order confirmation grants exam access
    path('orders/<int:pk>/status/', OrderStatusView.as_view(), name='order-status'),

    path('products/exams/', ProductExamLinkView.as_view(), name='product-exam-links'),
    path('products/<int:pk>/exams/', ProductExamsView.as_view(), name='product-exams'),
]
