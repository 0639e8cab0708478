from django.urls import path
from . import views

app_name = 'history'

urlpatterns = [
    path('', views.HistoryListView.as_view(), name='history-list'),
    path('<int:entry_id>/rate/', views.RateTripView.as_view(), name='rate-trip'),
    path('ratings/<int:user_id>/', views.RatingSummaryView.as_view(), name='rating-summary'),
]
