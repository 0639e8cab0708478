import threading
from datetime import timedelta
from unittest.mock import patch

from django.db import connection
from django.test import TestCase, TransactionTestCase
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import User
from services import messaging
from services.exceptions import NotFoundError, NotParticipantError, ValidationError
from services.notifications import NotificationDispatcher, events, reset_dispatcher

from .models import Conversation, Message


class RecordingChannel:
	name = 'in_app'

	def __init__(self):
		self.events = []

	def deliver(self, event):
		self.events.append(event)


class RelayTests(TestCase):
	def setUp(self):
		self.channel = RecordingChannel()
		reset_dispatcher(NotificationDispatcher([self.channel]))
		self.addCleanup(reset_dispatcher)

		self.driver = User.objects.create_user(username='driver', password='driver1234', role='driver')
		self.passenger = User.objects.create_user(username='passenger', password='pass1234', role='passenger')
		self.outsider = User.objects.create_user(username='outsider', password='pass1234', role='passenger')
		self.conversation = messaging.open_conversation(self.driver.id, self.passenger.id)

	def test_pair_is_unordered(self):
		again = messaging.open_conversation(self.passenger.id, self.driver.id)

		self.assertEqual(again.id, self.conversation.id)
		self.assertEqual(Conversation.objects.count(), 1)

	def test_open_conversation_validations(self):
		with self.assertRaises(ValidationError):
			messaging.open_conversation(self.driver.id, self.driver.id)
		with self.assertRaises(NotFoundError):
			messaging.open_conversation(self.driver.id, 999)

	def test_messages_are_sequenced_in_order(self):
		m1 = messaging.send(self.conversation.id, self.passenger.id, text='Where do we meet?')
		m2 = messaging.send(self.conversation.id, self.driver.id, text='Gate 2')
		m3 = messaging.send(self.conversation.id, self.passenger.id, text='Ok')

		self.assertEqual([m.sequence for m in (m1, m2, m3)], [1, 2, 3])
		self.assertLessEqual(m1.created_at, m2.created_at)
		self.assertLessEqual(m2.created_at, m3.created_at)

		ordered = messaging.messages(self.conversation.id, self.driver.id)
		self.assertEqual([m.id for m in ordered], [m1.id, m2.id, m3.id])

		newer = messaging.messages(self.conversation.id, self.driver.id, after_sequence=2)
		self.assertEqual([m.id for m in newer], [m3.id])

	def test_timestamps_never_run_backwards(self):
		first = messaging.send(self.conversation.id, self.passenger.id, text='one')
		earlier = first.created_at - timedelta(seconds=5)

		with patch('services.messaging.relay.timezone.now', return_value=earlier):
			second = messaging.send(self.conversation.id, self.driver.id, text='two')

		self.assertEqual(second.created_at, first.created_at)
		self.assertEqual(second.sequence, 2)

	def test_send_validations(self):
		with self.assertRaises(ValidationError):
			messaging.send(self.conversation.id, self.passenger.id, text='   ')
		with self.assertRaises(ValidationError):
			messaging.send(self.conversation.id, self.passenger.id, attachments=[{'name': 'no-url'}])
		with self.assertRaises(NotParticipantError):
			messaging.send(self.conversation.id, self.outsider.id, text='hi')
		with self.assertRaises(NotFoundError):
			messaging.send(999, self.passenger.id, text='hi')

		self.assertEqual(Message.objects.count(), 0)

	def test_attachment_only_message(self):
		message = messaging.send(
			self.conversation.id,
			self.passenger.id,
			attachments=[{'url': 'https://example.com/pin.png', 'name': 'pin'}]
		)

		self.assertEqual(message.text, '')
		self.assertEqual(message.attachments, [{'url': 'https://example.com/pin.png', 'name': 'pin'}])

	def test_status_only_moves_forward(self):
		message = messaging.send(self.conversation.id, self.passenger.id, text='hello')
		self.assertEqual(message.status, Message.STATUS_SENT)

		message = messaging.mark_read(message.id, self.driver.id)
		self.assertEqual(message.status, Message.STATUS_READ)
		self.assertIsNotNone(message.read_at)
		self.assertIsNotNone(message.delivered_at)

		message = messaging.mark_delivered(message.id, self.driver.id)
		self.assertEqual(message.status, Message.STATUS_READ)

		read_at = message.read_at
		message = messaging.mark_read(message.id, self.driver.id)
		self.assertEqual(message.status, Message.STATUS_READ)
		self.assertEqual(message.read_at, read_at)

	def test_read_ack_rolls_back_as_a_whole(self):
		message = messaging.send(self.conversation.id, self.passenger.id, text='hello')

		real_filter = Message.objects.filter

		def failing_backfill(*args, **kwargs):
			if 'delivered_at__isnull' in kwargs:
				raise RuntimeError('backfill failed')
			return real_filter(*args, **kwargs)

		with patch.object(Message.objects, 'filter', side_effect=failing_backfill):
			with self.assertRaises(RuntimeError):
				messaging.mark_read(message.id, self.driver.id)

		message.refresh_from_db()
		self.assertEqual(message.status, Message.STATUS_SENT)
		self.assertIsNone(message.read_at)

	def test_only_recipient_updates_status(self):
		message = messaging.send(self.conversation.id, self.passenger.id, text='hello')

		with self.assertRaises(NotParticipantError):
			messaging.mark_delivered(message.id, self.passenger.id)
		with self.assertRaises(NotParticipantError):
			messaging.mark_read(message.id, self.outsider.id)
		with self.assertRaises(NotFoundError):
			messaging.mark_read(999, self.driver.id)

	def test_conversation_list_with_unread_counts(self):
		messaging.send(self.conversation.id, self.passenger.id, text='one')
		last = messaging.send(self.conversation.id, self.passenger.id, text='two')
		other = messaging.open_conversation(self.driver.id, self.outsider.id)

		conversations = messaging.conversations_for_user(self.driver.id)

		self.assertEqual([c.id for c in conversations], [self.conversation.id, other.id])
		self.assertEqual(conversations[0].unread_count, 2)
		self.assertEqual(conversations[0].last_message.id, last.id)
		self.assertIsNone(conversations[1].last_message)

		self.assertEqual(messaging.mark_conversation_read(self.conversation.id, self.driver.id), 2)
		self.assertEqual(messaging.conversations_for_user(self.driver.id)[0].unread_count, 0)
		self.assertEqual(messaging.conversations_for_user(self.passenger.id)[0].unread_count, 0)

	def test_outsider_cannot_read(self):
		with self.assertRaises(NotParticipantError):
			messaging.messages(self.conversation.id, self.outsider.id)

	def test_recipient_notified_after_commit(self):
		with self.captureOnCommitCallbacks(execute=True):
			message = messaging.send(self.conversation.id, self.passenger.id, text='On my way')

		self.assertEqual(len(self.channel.events), 1)
		event = self.channel.events[0]
		self.assertEqual(event.kind, events.MESSAGE_RECEIVED)
		self.assertEqual(event.recipient_id, self.driver.id)
		self.assertEqual(event.payload['message_id'], message.id)
		self.assertEqual(event.message, 'On my way')


class ConcurrentSendTests(TransactionTestCase):
	def setUp(self):
		reset_dispatcher(NotificationDispatcher([RecordingChannel()]))
		self.addCleanup(reset_dispatcher)

		self.driver = User.objects.create_user(username='driver', password='driver1234', role='driver')
		self.passenger = User.objects.create_user(username='passenger', password='pass1234', role='passenger')
		self.conversation = messaging.open_conversation(self.driver.id, self.passenger.id)

	def test_racing_sends_get_distinct_sequences(self):
		barrier = threading.Barrier(2)
		errors = []

		def worker(sender_id, text):
			try:
				barrier.wait()
				messaging.send(self.conversation.id, sender_id, text=text)
			except Exception as e:
				errors.append(type(e).__name__)
			finally:
				connection.close()

		threads = [
			threading.Thread(target=worker, args=(self.driver.id, 'Gate 2')),
			threading.Thread(target=worker, args=(self.passenger.id, 'Where do we meet?')),
		]
		for thread in threads:
			thread.start()
		for thread in threads:
			thread.join()

		self.assertEqual(errors, [])
		ordered = messaging.messages(self.conversation.id, self.driver.id)
		self.assertEqual([m.sequence for m in ordered], [1, 2])
		self.conversation.refresh_from_db()
		self.assertEqual(self.conversation.last_sequence, 2)


class MessagingApiTests(TestCase):
	def setUp(self):
		self.client = APIClient()
		self.driver = User.objects.create_user(username='driver', password='driver1234', role='driver')
		self.passenger = User.objects.create_user(username='passenger', password='pass1234', role='passenger')
		self.outsider = User.objects.create_user(username='outsider', password='pass1234', role='passenger')
		self.client.force_authenticate(user=self.passenger)

	def test_open_send_and_read(self):
		response = self.client.post('/api/messages/conversations/', {'user_id': self.driver.id}, format='json')
		self.assertEqual(response.status_code, 201)
		conversation_id = response.data['id']
		self.assertEqual(response.data['other_participant']['id'], self.driver.id)

		response = self.client.post(
			f'/api/messages/conversations/{conversation_id}/messages/',
			{'text': 'Running 5 min late'},
			format='json'
		)
		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['sequence'], 1)
		message_id = response.data['id']

		self.client.force_authenticate(user=self.driver)
		response = self.client.get('/api/messages/conversations/')
		self.assertEqual(response.data['conversations'][0]['unread_count'], 1)
		self.assertEqual(response.data['conversations'][0]['other_participant']['id'], self.passenger.id)

		response = self.client.post(f'/api/messages/{message_id}/delivered/')
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['status'], 'delivered')

		response = self.client.get(f'/api/messages/conversations/{conversation_id}/')
		self.assertEqual(response.status_code, 200)
		self.assertEqual([m['status'] for m in response.data['messages']], ['read'])

	def test_outsider_gets_conflict(self):
		conversation = messaging.open_conversation(self.driver.id, self.passenger.id)
		self.client.force_authenticate(user=self.outsider)

		response = self.client.get(f'/api/messages/conversations/{conversation.id}/')

		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['kind'], 'not_participant')

	def test_sender_cannot_mark_own_message_read(self):
		conversation = messaging.open_conversation(self.driver.id, self.passenger.id)
		message = messaging.send(conversation.id, self.passenger.id, text='hi')

		response = self.client.post(f'/api/messages/{message.id}/read/')

		self.assertEqual(response.status_code, 409)

	def test_empty_message_rejected(self):
		conversation = messaging.open_conversation(self.driver.id, self.passenger.id)

		response = self.client.post(
			f'/api/messages/conversations/{conversation.id}/messages/',
			{'text': ''},
			format='json'
		)

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['kind'], 'validation_error')
