from django.urls import path
from . import views

urlpatterns = [
    path('reports/dashboard/', views.dashboard_summary, name='dashboard-summary'),
    path('reports/progress-over-time/', views.progress_over_time, name='progress-over-time'),
    path('reports/top-skus/', views.top_skus, name='top-skus'),
    path('reports/scans-by-location/', views.scans_by_location, name='scans-by-location'),
    path('reports/weekly-trends/', views.weekly_trends, name='weekly-trends'),
]
