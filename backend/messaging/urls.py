from django.urls import path
from . import views

app_name = 'messaging'

urlpatterns = [
    path('conversations/', views.ConversationListView.as_view(), name='conversation-list'),
    path('conversations/<int:conversation_id>/', views.ConversationDetailView.as_view(), name='conversation-detail'),
    path('conversations/<int:conversation_id>/messages/', views.SendMessageView.as_view(), name='send-message'),
    path('<int:message_id>/delivered/', views.MessageDeliveredView.as_view(), name='message-delivered'),
    path('<int:message_id>/read/', views.MessageReadView.as_view(), name='message-read'),
]
