from datetime import timedelta
from unittest.mock import patch

import requests
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core import mail
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import User
from services import catalog, ride_management
from services.exceptions import ValidationError
from services.notifications import (
	NotificationDispatcher,
	NotificationEvent,
	build_dispatcher,
	events,
	get_preferences,
	reset_dispatcher,
	update_preferences,
)

from .channels import EmailChannel, InAppChannel, PushChannel, user_group
from .models import NotificationPreference


class RecordingChannel:
	def __init__(self, name):
		self.name = name
		self.events = []

	def deliver(self, event):
		self.events.append(event)


class BrokenChannel:
	name = 'email'

	def deliver(self, event):
		raise RuntimeError('smtp down')


class NotificationTestMixin:
	def setUp(self):
		self.driver = User.objects.create_user(
			username='driver',
			password='driver1234',
			role='driver',
			email='driver@example.com'
		)
		self.passenger = User.objects.create_user(
			username='passenger',
			password='pass1234',
			role='passenger',
			email='passenger@example.com'
		)
		self.addCleanup(reset_dispatcher)

	def _event(self, recipient=None, category=events.CATEGORY_RIDE_UPDATES):
		return NotificationEvent(
			kind=events.REQUEST_ACCEPTED,
			recipient_id=(recipient or self.passenger).id,
			category=category,
			message='Your request was accepted.',
			payload={'ride_id': 7},
		)


class DispatcherTests(NotificationTestMixin, TestCase):
	def test_failing_channel_does_not_stop_others(self):
		in_app = RecordingChannel('in_app')
		push = RecordingChannel('push')
		dispatcher = NotificationDispatcher([in_app, BrokenChannel(), push])

		delivered = dispatcher.emit(self._event())

		self.assertEqual(delivered, 2)
		self.assertEqual(len(in_app.events), 1)
		self.assertEqual(len(push.events), 1)

	def test_muted_category_is_skipped_per_channel(self):
		NotificationPreference.objects.create(
			user=self.passenger,
			category=events.CATEGORY_RIDE_UPDATES,
			channel='email',
			enabled=False,
		)
		in_app = RecordingChannel('in_app')
		email = RecordingChannel('email')
		dispatcher = NotificationDispatcher([in_app, email])

		dispatcher.emit(self._event())
		dispatcher.emit(self._event(category=events.CATEGORY_MESSAGES))

		self.assertEqual(len(in_app.events), 2)
		self.assertEqual([e.category for e in email.events], [events.CATEGORY_MESSAGES])

	def test_build_dispatcher_from_settings(self):
		dispatcher = build_dispatcher()

		self.assertEqual([c.name for c in dispatcher.channels], ['in_app', 'email', 'push'])

	def test_event_payload_is_flat(self):
		payload = self._event().as_payload()

		self.assertEqual(payload['kind'], events.REQUEST_ACCEPTED)
		self.assertEqual(payload['recipient_id'], self.passenger.id)
		self.assertEqual(payload['ride_id'], 7)


class ChannelTests(NotificationTestMixin, TestCase):
	def test_in_app_channel_sends_to_user_group(self):
		layer = get_channel_layer()
		channel_name = async_to_sync(layer.new_channel)()
		async_to_sync(layer.group_add)(user_group(self.passenger.id), channel_name)

		InAppChannel().deliver(self._event())

		message = async_to_sync(layer.receive)(channel_name)
		self.assertEqual(message['type'], 'notification')
		self.assertEqual(message['event']['kind'], events.REQUEST_ACCEPTED)
		self.assertEqual(message['event']['ride_id'], 7)

	def test_email_channel_sends_mail(self):
		EmailChannel().deliver(self._event())

		self.assertEqual(len(mail.outbox), 1)
		self.assertEqual(mail.outbox[0].to, ['passenger@example.com'])
		self.assertEqual(mail.outbox[0].subject, 'Your ride request was accepted')

	def test_email_skipped_without_address(self):
		self.passenger.email = ''
		self.passenger.save(update_fields=['email'])

		EmailChannel().deliver(self._event())

		self.assertEqual(len(mail.outbox), 0)

	@patch('notifications.tasks.requests.post')
	def test_push_skipped_without_gateway(self, mock_post):
		PushChannel().deliver(self._event())

		mock_post.assert_not_called()

	@override_settings(PUSH_GATEWAY_URL='https://push.example.com/send')
	@patch('notifications.tasks.requests.post')
	def test_push_posts_to_gateway(self, mock_post):
		PushChannel().deliver(self._event())

		mock_post.assert_called_once()
		args, kwargs = mock_post.call_args
		self.assertEqual(args[0], 'https://push.example.com/send')
		self.assertEqual(kwargs['json']['user_id'], self.passenger.id)
		self.assertEqual(kwargs['json']['notification']['kind'], events.REQUEST_ACCEPTED)

	@override_settings(PUSH_GATEWAY_URL='https://push.example.com/send')
	@patch('notifications.tasks.requests.post', side_effect=requests.ConnectionError('offline'))
	def test_push_failure_does_not_raise(self, mock_post):
		PushChannel().deliver(self._event())

		self.assertTrue(mock_post.called)

	def test_accepting_request_emails_passenger(self):
		reset_dispatcher(build_dispatcher())
		ride = catalog.publish(
			self.driver,
			origin='Wakad',
			destination='Magarpatta',
			departure_at=timezone.now() + timedelta(hours=3),
			total_seats=2,
		)
		rr = ride_management.submit(ride.id, self.passenger)
		mail.outbox = []

		with self.captureOnCommitCallbacks(execute=True):
			ride_management.accept(rr.id)

		self.assertEqual([m.to for m in mail.outbox], [['passenger@example.com']])


class PreferenceTests(NotificationTestMixin, TestCase):
	def test_defaults_are_enabled(self):
		prefs = get_preferences(self.passenger)

		self.assertEqual(set(prefs), {'ride_updates', 'ride_requests', 'messages'})
		self.assertTrue(all(all(channels.values()) for channels in prefs.values()))

	def test_update_is_partial_and_validated(self):
		prefs = update_preferences(self.passenger, {'messages': {'email': False}})

		self.assertFalse(prefs['messages']['email'])
		self.assertTrue(prefs['messages']['in_app'])
		self.assertFalse(NotificationPreference.is_enabled(self.passenger.id, 'messages', 'email'))

		with self.assertRaises(ValidationError):
			update_preferences(self.passenger, {'messages': {'in_app': False}, 'weather': {'email': False}})

		# Nothing from the rejected update was applied
		self.assertTrue(get_preferences(self.passenger)['messages']['in_app'])

	def test_preferences_api(self):
		client = APIClient()
		client.force_authenticate(user=self.passenger)

		response = client.put(
			'/api/notifications/preferences/',
			{'ride_updates': {'push': False}},
			format='json'
		)
		self.assertEqual(response.status_code, 200)
		self.assertFalse(response.data['preferences']['ride_updates']['push'])

		response = client.get('/api/notifications/preferences/')
		self.assertFalse(response.data['preferences']['ride_updates']['push'])

		response = client.put('/api/notifications/preferences/', {'messages': {'sms': True}}, format='json')
		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['kind'], 'validation_error')
