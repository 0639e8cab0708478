from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser
from django.test import TransactionTestCase
from rest_framework_simplejwt.tokens import AccessToken

from accounts.models import User
from messaging.models import Message
from notifications.channels import user_group
from services import messaging

from .consumers import NotificationConsumer
from .middleware import JWTOrCookieAuthMiddleware


class NotificationConsumerTests(TransactionTestCase):
	def setUp(self):
		self.driver = User.objects.create_user(username='driver', password='driver1234', role='driver')
		self.passenger = User.objects.create_user(username='passenger', password='pass1234', role='passenger')

	def _communicator(self, user):
		communicator = WebsocketCommunicator(NotificationConsumer.as_asgi(), '/ws/notifications/')
		communicator.scope['user'] = user
		return communicator

	def test_anonymous_connection_rejected(self):
		async def run():
			communicator = self._communicator(AnonymousUser())
			connected, _ = await communicator.connect()
			self.assertFalse(connected)

		async_to_sync(run)()

	def test_receives_notifications_for_user_group(self):
		async def run():
			communicator = self._communicator(self.passenger)
			connected, _ = await communicator.connect()
			self.assertTrue(connected)

			hello = await communicator.receive_json_from()
			self.assertEqual(hello['type'], 'connection_established')
			self.assertEqual(hello['user_id'], self.passenger.id)

			await get_channel_layer().group_send(user_group(self.passenger.id), {
				'type': 'notification',
				'event': {'kind': 'request_accepted', 'ride_id': 3},
			})
			event = await communicator.receive_json_from()
			self.assertEqual(event['type'], 'notification')
			self.assertEqual(event['kind'], 'request_accepted')
			self.assertEqual(event['ride_id'], 3)

			await communicator.disconnect()

		async_to_sync(run)()

	def test_read_acknowledgement_updates_message(self):
		conversation = messaging.open_conversation(self.driver.id, self.passenger.id)
		message = messaging.send(conversation.id, self.driver.id, text='Outside now')

		async def run():
			communicator = self._communicator(self.passenger)
			await communicator.connect()
			await communicator.receive_json_from()

			await communicator.send_json_to({'type': 'message_read', 'message_id': message.id})
			reply = await communicator.receive_json_from()
			self.assertEqual(reply['type'], 'message_status')
			self.assertEqual(reply['status'], 'read')

			await communicator.disconnect()

		async_to_sync(run)()

		message.refresh_from_db()
		self.assertEqual(message.status, Message.STATUS_READ)

	def test_sender_acknowledgement_is_rejected(self):
		conversation = messaging.open_conversation(self.driver.id, self.passenger.id)
		message = messaging.send(conversation.id, self.driver.id, text='Outside now')

		async def run():
			communicator = self._communicator(self.driver)
			await communicator.connect()
			await communicator.receive_json_from()

			await communicator.send_json_to({'type': 'message_delivered', 'message_id': message.id})
			reply = await communicator.receive_json_from()
			self.assertEqual(reply['type'], 'error')
			self.assertEqual(reply['kind'], 'not_participant')

			await communicator.send_json_to({'type': 'dance'})
			reply = await communicator.receive_json_from()
			self.assertEqual(reply['type'], 'error')

			await communicator.disconnect()

		async_to_sync(run)()

		message.refresh_from_db()
		self.assertEqual(message.status, Message.STATUS_SENT)

	def test_jwt_middleware_authenticates_query_token(self):
		token = str(AccessToken.for_user(self.passenger))
		application = JWTOrCookieAuthMiddleware(NotificationConsumer.as_asgi())

		async def run():
			communicator = WebsocketCommunicator(application, f'/ws/notifications/?token={token}')
			connected, _ = await communicator.connect()
			self.assertTrue(connected)
			hello = await communicator.receive_json_from()
			self.assertEqual(hello['user_id'], self.passenger.id)
			await communicator.disconnect()

			communicator = WebsocketCommunicator(application, '/ws/notifications/?token=bad')
			connected, _ = await communicator.connect()
			self.assertFalse(connected)

		async_to_sync(run)()
