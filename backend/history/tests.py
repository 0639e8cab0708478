from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import User
from services import catalog, history, ride_management
from services.exceptions import (
	AlreadyRatedError,
	InvalidStateError,
	NotFoundError,
	NotParticipantError,
	ValidationError,
)

from .models import HistoryEntry, Rating


class HistoryTestMixin:
	def setUp(self):
		self.driver = User.objects.create_user(username='driver', password='driver1234', role='driver')
		self.passenger = User.objects.create_user(username='passenger', password='pass1234', role='passenger')
		self.outsider = User.objects.create_user(username='outsider', password='pass1234', role='passenger')

	def _accepted_request(self, seats=1, passenger=None):
		ride = catalog.publish(
			self.driver,
			origin='Aundh',
			destination='Camp',
			departure_at=timezone.now() + timedelta(hours=2),
			total_seats=3,
			price_per_seat=5000,
		)
		rr = ride_management.submit(ride.id, passenger or self.passenger, seats=seats)
		ride_management.accept(rr.id)
		return ride, rr

	def _completed_entry(self):
		ride, rr = self._accepted_request()
		catalog.mark_departed(ride.id)
		return history.complete(rr.id)


class AggregatorTests(HistoryTestMixin, TestCase):
	def test_complete_requires_departed_ride(self):
		ride, rr = self._accepted_request()

		with self.assertRaises(InvalidStateError):
			history.complete(rr.id)

		catalog.mark_departed(ride.id)
		entry = history.complete(rr.id)

		self.assertEqual(entry.status, HistoryEntry.STATUS_COMPLETED)
		self.assertEqual(entry.passenger, self.passenger)
		self.assertEqual(entry.driver, self.driver)
		self.assertEqual(entry.ride, ride)

	def test_complete_is_idempotent(self):
		ride, rr = self._accepted_request()
		catalog.mark_departed(ride.id)

		first = history.complete(rr.id)
		second = history.complete(rr.id)

		self.assertEqual(first.id, second.id)
		self.assertEqual(HistoryEntry.objects.count(), 1)

	def test_complete_rejects_unaccepted_request(self):
		ride = catalog.publish(
			self.driver, origin='A', destination='B',
			departure_at=timezone.now() + timedelta(hours=1), total_seats=2,
		)
		rr = ride_management.submit(ride.id, self.passenger)
		ride_management.decline(rr.id)

		with self.assertRaises(InvalidStateError):
			history.complete(rr.id)
		with self.assertRaises(NotFoundError):
			history.complete(999)

	def test_complete_ride_completes_every_accepted_request(self):
		ride, rr = self._accepted_request()
		rr2 = ride_management.submit(ride.id, self.outsider)
		ride_management.accept(rr2.id)
		catalog.mark_departed(ride.id)

		entries = history.complete_ride(ride.id, driver=self.driver)

		self.assertEqual(sorted(e.request_id for e in entries), sorted([rr.id, rr2.id]))

	def test_both_participants_rate_once(self):
		entry = self._completed_entry()

		rating = history.rate(entry.id, self.passenger, Rating.POSITIVE)
		self.assertEqual(rating.ratee, self.driver)

		rating = history.rate(entry.id, self.driver, Rating.NEGATIVE)
		self.assertEqual(rating.ratee, self.passenger)

		with self.assertRaises(AlreadyRatedError):
			history.rate(entry.id, self.passenger, Rating.NEGATIVE)

		self.assertEqual(Rating.objects.filter(entry=entry).count(), 2)
		self.assertEqual(Rating.objects.get(entry=entry, rater=self.passenger).value, Rating.POSITIVE)

	def test_rate_validations(self):
		entry = self._completed_entry()

		with self.assertRaises(ValidationError):
			history.rate(entry.id, self.passenger, 'five_stars')
		with self.assertRaises(NotParticipantError):
			history.rate(entry.id, self.outsider, Rating.POSITIVE)
		with self.assertRaises(NotFoundError):
			history.rate(999, self.passenger, Rating.POSITIVE)

	def test_cancelled_trips_cannot_be_rated(self):
		ride, rr = self._accepted_request()
		catalog.cancel(ride.id)
		entry = HistoryEntry.objects.get(request=rr)

		with self.assertRaises(InvalidStateError):
			history.rate(entry.id, self.passenger, Rating.POSITIVE)

	def test_history_filters_by_role_and_status(self):
		completed = self._completed_entry()
		ride, rr = self._accepted_request()
		catalog.cancel(ride.id)
		cancelled = HistoryEntry.objects.get(request=rr)

		self.assertEqual(
			[e.id for e in history.history(self.passenger)],
			[cancelled.id, completed.id]
		)
		self.assertEqual(
			[e.id for e in history.history(self.passenger, status='completed')],
			[completed.id]
		)
		self.assertEqual(history.history(self.passenger, role='driver'), [])
		self.assertEqual(len(history.history(self.driver, role='driver')), 2)

		with self.assertRaises(ValidationError):
			history.history(self.passenger, role='pilot')

	def test_rating_summary(self):
		entry = self._completed_entry()
		history.rate(entry.id, self.passenger, Rating.POSITIVE)

		summary = history.rating_summary(self.driver.id)

		self.assertEqual(summary['positive'], 1)
		self.assertEqual(summary['negative'], 0)
		self.assertEqual(summary['score'], 100.0)
		self.assertIsNone(history.rating_summary(self.outsider.id)['score'])


class HistoryApiTests(HistoryTestMixin, TestCase):
	def setUp(self):
		super().setUp()
		self.client = APIClient()
		self.client.force_authenticate(user=self.passenger)

	def test_list_and_rate(self):
		entry = self._completed_entry()

		response = self.client.get('/api/history/')
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['count'], 1)
		self.assertIsNone(response.data['entries'][0]['my_rating'])

		response = self.client.post(f'/api/history/{entry.id}/rate/', {'value': 'positive'}, format='json')
		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['ratee'], self.driver.id)

		response = self.client.post(f'/api/history/{entry.id}/rate/', {'value': 'positive'}, format='json')
		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['kind'], 'already_rated')

		response = self.client.get('/api/history/')
		self.assertEqual(response.data['entries'][0]['my_rating'], 'positive')

	def test_invalid_rating_value(self):
		entry = self._completed_entry()

		response = self.client.post(f'/api/history/{entry.id}/rate/', {'value': 'meh'}, format='json')

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['kind'], 'validation_error')

	def test_bad_role_filter(self):
		response = self.client.get('/api/history/', {'role': 'pilot'})

		self.assertEqual(response.status_code, 400)

	def test_rating_summary_endpoint(self):
		entry = self._completed_entry()
		history.rate(entry.id, self.passenger, Rating.NEGATIVE)

		response = self.client.get(f'/api/history/ratings/{self.driver.id}/')

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['negative'], 1)
		self.assertEqual(response.data['score'], 0.0)
