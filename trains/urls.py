"""
URL configuration for trains app.
"""
from django.urls import path
from .views import TrainListCreateView, TrainDetailView

urlpatterns = [
    path('', TrainListCreateView.as_view(), name='train_list'),
    path('<int:pk>/', TrainDetailView.as_view(), name='train_detail'),
]
