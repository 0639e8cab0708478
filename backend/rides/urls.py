from django.urls import path
from . import views

app_name = 'rides'

urlpatterns = [
    path('', views.search_rides, name='search-rides'),
    path('<int:ride_id>/', views.ride_detail, name='ride-detail'),
]
