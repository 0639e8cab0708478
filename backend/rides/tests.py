import threading
from datetime import timedelta
from io import StringIO

from django.core.management import call_command
from django.db import connection
from django.test import TestCase, TransactionTestCase
from django.utils import timezone
from rest_framework.test import APIRequestFactory, force_authenticate

from accounts.models import User
from history.models import HistoryEntry
from messaging.models import Conversation
from services import catalog, ride_management
from services.catalog import RideFilter
from services.exceptions import (
	CapacityError,
	DuplicateRequestError,
	InvalidStateError,
	NotFoundError,
	NotParticipantError,
	ValidationError,
)
from services.notifications import NotificationDispatcher, events, reset_dispatcher
from services.ride_management import request_ledger

from .models import Ride, RideRequest
from .tasks import depart_due_rides_task
from .views import ride_detail, search_rides


class RecordingChannel:
	name = 'in_app'

	def __init__(self):
		self.events = []

	def deliver(self, event):
		self.events.append(event)


class RideTestMixin:
	def setUp(self):
		self.channel = RecordingChannel()
		reset_dispatcher(NotificationDispatcher([self.channel]))
		self.addCleanup(reset_dispatcher)

		self.driver = User.objects.create_user(
			username='driver',
			password='driver1234',
			role='driver',
			phone_number='9000000001'
		)
		self.p1 = User.objects.create_user(
			username='passenger_one',
			password='pass1234',
			role='passenger',
			phone_number='9000000002'
		)
		self.p2 = User.objects.create_user(
			username='passenger_two',
			password='pass1234',
			role='passenger',
			phone_number='9000000003'
		)

	def publish(self, seats=3, hours=24, **kwargs):
		kwargs.setdefault('origin', 'Pune Station')
		kwargs.setdefault('destination', 'Mumbai Airport')
		kwargs.setdefault('price_per_seat', 50000)
		return catalog.publish(
			self.driver,
			departure_at=timezone.now() + timedelta(hours=hours),
			total_seats=seats,
			**kwargs
		)


class RideCatalogTests(RideTestMixin, TestCase):
	def test_publish_opens_ride_with_all_seats_available(self):
		ride = self.publish(seats=4, vehicle_type='sedan')

		self.assertEqual(ride.status, Ride.STATUS_OPEN)
		self.assertEqual(ride.available_seats, 4)
		self.assertEqual(ride.total_seats, 4)
		self.assertEqual(ride.driver, self.driver)

	def test_publish_rejects_malformed_rides(self):
		with self.assertRaises(ValidationError):
			self.publish(seats=0)
		with self.assertRaises(ValidationError):
			self.publish(price_per_seat=-1)
		with self.assertRaises(ValidationError):
			self.publish(origin='   ')
		self.assertEqual(Ride.objects.count(), 0)

	def test_search_orders_by_departure_and_filters(self):
		later = self.publish(hours=48)
		sooner = self.publish(hours=2)
		self.publish(hours=5, origin='Nashik', destination='Mumbai Airport')
		self.publish(hours=6, price_per_seat=90000)

		results = catalog.search(RideFilter(origin_contains='pune', max_price=60000))

		self.assertEqual([r.id for r in results], [sooner.id, later.id])

	def test_search_skips_rides_that_cannot_take_the_party(self):
		small = self.publish(seats=1)
		big = self.publish(seats=4)
		cancelled = self.publish(seats=4)
		catalog.cancel(cancelled.id)

		results = catalog.search(RideFilter(min_seats=2))

		self.assertEqual([r.id for r in results], [big.id])
		self.assertNotIn(small.id, [r.id for r in catalog.search(RideFilter(min_seats=3))])

	def test_search_departure_window_is_inclusive(self):
		ride = self.publish(hours=10)

		results = catalog.search(RideFilter(
			departure_after=ride.departure_at,
			departure_before=ride.departure_at,
		))

		self.assertEqual([r.id for r in results], [ride.id])

	def test_search_rejects_inverted_price_range(self):
		with self.assertRaises(ValidationError):
			catalog.search(RideFilter(min_price=100, max_price=10))

	def test_get_ride_not_found(self):
		with self.assertRaises(NotFoundError):
			catalog.get_ride(999)

	def test_only_driver_can_cancel(self):
		ride = self.publish()

		with self.assertRaises(NotParticipantError):
			catalog.cancel(ride.id, driver=self.p1)

		ride.refresh_from_db()
		self.assertEqual(ride.status, Ride.STATUS_OPEN)


class RequestLedgerTests(RideTestMixin, TestCase):
	def test_first_accept_wins_and_second_is_over_capacity(self):
		ride = self.publish(seats=3)
		r1 = ride_management.submit(ride.id, self.p1, seats=2)
		r2 = ride_management.submit(ride.id, self.p2, seats=2)

		# Pending requests hold no seats
		ride.refresh_from_db()
		self.assertEqual(ride.available_seats, 3)

		ride_management.accept(r1.id, driver=self.driver)
		ride.refresh_from_db()
		self.assertEqual(ride.available_seats, 1)

		with self.assertRaises(CapacityError):
			ride_management.accept(r2.id, driver=self.driver)

		ride_management.decline(r2.id, driver=self.driver)

		r1.refresh_from_db()
		r2.refresh_from_db()
		ride.refresh_from_db()
		self.assertEqual(r1.status, RideRequest.STATUS_ACCEPTED)
		self.assertEqual(r2.status, RideRequest.STATUS_DECLINED)
		self.assertEqual(r2.decline_reason, request_ledger.REASON_DRIVER_DECLINED)
		self.assertEqual(ride.available_seats, 1)
		self.assertEqual(ride.status, Ride.STATUS_OPEN)

	def test_cancelling_ride_declines_pending_and_accepted(self):
		ride = self.publish(seats=3)
		pending = ride_management.submit(ride.id, self.p1, seats=1)
		accepted = ride_management.submit(ride.id, self.p2, seats=2)
		ride_management.accept(accepted.id)

		catalog.cancel(ride.id, driver=self.driver)

		ride.refresh_from_db()
		pending.refresh_from_db()
		accepted.refresh_from_db()
		self.assertEqual(ride.status, Ride.STATUS_CANCELLED)
		self.assertEqual(ride.available_seats, 3)
		self.assertEqual(pending.status, RideRequest.STATUS_DECLINED)
		self.assertEqual(accepted.status, RideRequest.STATUS_DECLINED)
		self.assertEqual(pending.decline_reason, request_ledger.REASON_RIDE_CANCELLED)

		entry = HistoryEntry.objects.get(request=accepted)
		self.assertEqual(entry.status, HistoryEntry.STATUS_CANCELLED)
		self.assertFalse(HistoryEntry.objects.filter(request=pending).exists())

	def test_cancel_by_ride_requires_cancelled_ride(self):
		ride = self.publish()

		with self.assertRaises(InvalidStateError):
			ride_management.cancel_by_ride(ride.id)

	def test_accept_filling_last_seat_marks_ride_full(self):
		ride = self.publish(seats=2)
		rr = ride_management.submit(ride.id, self.p1, seats=2)

		ride_management.accept(rr.id)

		ride.refresh_from_db()
		self.assertEqual(ride.available_seats, 0)
		self.assertEqual(ride.status, Ride.STATUS_FULL)

		with self.assertRaises(CapacityError):
			ride_management.submit(ride.id, self.p2, seats=1)

	def test_accept_opens_conversation_with_ride_context(self):
		ride = self.publish()
		rr = ride_management.submit(ride.id, self.p1)

		ride_management.accept(rr.id)

		conversation = Conversation.objects.get()
		self.assertEqual(set(conversation.participant_ids), {self.driver.id, self.p1.id})
		self.assertEqual(conversation.ride_id, ride.id)

	def test_stale_ride_copy_cannot_oversell(self):
		ride = self.publish(seats=2)
		rr = ride_management.submit(ride.id, self.p1, seats=2)
		stale = Ride.objects.get(id=ride.id)

		ride_management.accept(rr.id)

		self.assertEqual(stale.available_seats, 2)
		with self.assertRaises(CapacityError):
			request_ledger._reserve_seats(stale, 1)

		ride.refresh_from_db()
		self.assertEqual(ride.available_seats, 0)

	def test_submit_validations(self):
		ride = self.publish(seats=2)

		with self.assertRaises(ValidationError):
			ride_management.submit(ride.id, self.p1, seats=0)
		with self.assertRaises(ValidationError):
			ride_management.submit(ride.id, self.driver, seats=1)
		with self.assertRaises(CapacityError):
			ride_management.submit(ride.id, self.p1, seats=3)
		with self.assertRaises(NotFoundError):
			ride_management.submit(999, self.p1, seats=1)

		self.assertEqual(RideRequest.objects.count(), 0)

	def test_duplicate_pending_request_rejected(self):
		ride = self.publish()
		first = ride_management.submit(ride.id, self.p1)

		with self.assertRaises(DuplicateRequestError):
			ride_management.submit(ride.id, self.p1)

		# A decided request does not block a new one
		ride_management.decline(first.id)
		again = ride_management.submit(ride.id, self.p1)
		self.assertEqual(again.status, RideRequest.STATUS_PENDING)

	def test_decided_requests_are_final(self):
		ride = self.publish()
		rr = ride_management.submit(ride.id, self.p1)
		ride_management.decline(rr.id)

		with self.assertRaises(InvalidStateError):
			ride_management.accept(rr.id)
		with self.assertRaises(InvalidStateError):
			ride_management.decline(rr.id)

		ride.refresh_from_db()
		self.assertEqual(ride.available_seats, 3)

	def test_only_ride_driver_decides(self):
		ride = self.publish()
		rr = ride_management.submit(ride.id, self.p1)

		with self.assertRaises(NotParticipantError):
			ride_management.accept(rr.id, driver=self.p2)

		rr.refresh_from_db()
		self.assertTrue(rr.is_pending)

	def test_passenger_cancels_pending_request(self):
		ride = self.publish()
		rr = ride_management.submit(ride.id, self.p1)

		with self.assertRaises(NotParticipantError):
			ride_management.cancel_request(rr.id, self.p2)

		ride_management.cancel_request(rr.id, self.p1)
		rr.refresh_from_db()
		self.assertEqual(rr.status, RideRequest.STATUS_CANCELLED)

		with self.assertRaises(InvalidStateError):
			ride_management.cancel_request(rr.id, self.p1)

	def test_request_listings(self):
		ride = self.publish()
		r1 = ride_management.submit(ride.id, self.p1)
		r2 = ride_management.submit(ride.id, self.p2)
		ride_management.accept(r2.id)

		self.assertEqual([r.id for r in ride_management.requests_for_ride(ride.id)], [r1.id, r2.id])
		self.assertEqual(
			[r.id for r in ride_management.requests_for_ride(ride.id, status='pending')],
			[r1.id]
		)
		self.assertEqual([r.id for r in ride_management.requests_for_passenger(self.p2)], [r2.id])

	def test_notifications_sent_after_commit(self):
		ride = self.publish()

		with self.captureOnCommitCallbacks(execute=True):
			rr = ride_management.submit(ride.id, self.p1)
		with self.captureOnCommitCallbacks(execute=True):
			ride_management.accept(rr.id)

		kinds = [(e.kind, e.recipient_id) for e in self.channel.events]
		self.assertEqual(kinds, [
			(events.REQUEST_CREATED, self.driver.id),
			(events.REQUEST_ACCEPTED, self.p1.id),
		])
		self.assertIn('conversation_id', self.channel.events[1].payload)

	def test_failed_operation_sends_nothing(self):
		ride = self.publish(seats=1)

		with self.captureOnCommitCallbacks(execute=True) as callbacks:
			with self.assertRaises(CapacityError):
				ride_management.submit(ride.id, self.p1, seats=2)

		self.assertEqual(callbacks, [])
		self.assertEqual(self.channel.events, [])


class ConcurrentAcceptTests(RideTestMixin, TransactionTestCase):
	def _accept_together(self, request_ids):
		barrier = threading.Barrier(len(request_ids))
		results = {}

		def worker(request_id):
			try:
				barrier.wait()
				ride_management.accept(request_id, driver=self.driver)
				results[request_id] = 'ok'
			except CapacityError:
				results[request_id] = 'CapacityError'
			except Exception as e:
				results[request_id] = type(e).__name__
			finally:
				connection.close()

		threads = [threading.Thread(target=worker, args=(rid,)) for rid in request_ids]
		for thread in threads:
			thread.start()
		for thread in threads:
			thread.join()
		return results

	def test_racing_accepts_over_capacity_one_wins(self):
		ride = self.publish(seats=3)
		r1 = ride_management.submit(ride.id, self.p1, seats=2)
		r2 = ride_management.submit(ride.id, self.p2, seats=2)

		results = self._accept_together([r1.id, r2.id])

		self.assertEqual(sorted(results.values()), ['CapacityError', 'ok'])
		ride.refresh_from_db()
		self.assertEqual(ride.available_seats, 1)
		self.assertEqual(ride.status, Ride.STATUS_OPEN)
		self.assertEqual(RideRequest.objects.filter(status=RideRequest.STATUS_ACCEPTED).count(), 1)
		self.assertEqual(RideRequest.objects.filter(status=RideRequest.STATUS_PENDING).count(), 1)

	def test_racing_accepts_within_capacity_both_succeed(self):
		ride = self.publish(seats=4)
		r1 = ride_management.submit(ride.id, self.p1, seats=2)
		r2 = ride_management.submit(ride.id, self.p2, seats=2)

		results = self._accept_together([r1.id, r2.id])

		self.assertEqual(sorted(results.values()), ['ok', 'ok'])
		ride.refresh_from_db()
		self.assertEqual(ride.available_seats, 0)
		self.assertEqual(ride.status, Ride.STATUS_FULL)


class RideDepartureTests(RideTestMixin, TestCase):
	def test_departing_declines_pending_requests(self):
		ride = self.publish()
		pending = ride_management.submit(ride.id, self.p1)
		accepted = ride_management.submit(ride.id, self.p2)
		ride_management.accept(accepted.id)

		catalog.mark_departed(ride.id, driver=self.driver)

		ride.refresh_from_db()
		pending.refresh_from_db()
		accepted.refresh_from_db()
		self.assertEqual(ride.status, Ride.STATUS_DEPARTED)
		self.assertIsNotNone(ride.departed_at)
		self.assertEqual(pending.status, RideRequest.STATUS_DECLINED)
		self.assertEqual(pending.decline_reason, request_ledger.REASON_RIDE_DEPARTED)
		self.assertEqual(accepted.status, RideRequest.STATUS_ACCEPTED)

		with self.assertRaises(InvalidStateError):
			catalog.mark_departed(ride.id)
		with self.assertRaises(InvalidStateError):
			catalog.cancel(ride.id)

	def test_depart_due_rides_only_touches_past_active_rides(self):
		due = self.publish(hours=-1)
		upcoming = self.publish(hours=3)
		cancelled = self.publish(hours=-2)
		catalog.cancel(cancelled.id)

		self.assertEqual(catalog.depart_due_rides(), 1)

		due.refresh_from_db()
		upcoming.refresh_from_db()
		cancelled.refresh_from_db()
		self.assertEqual(due.status, Ride.STATUS_DEPARTED)
		self.assertEqual(upcoming.status, Ride.STATUS_OPEN)
		self.assertEqual(cancelled.status, Ride.STATUS_CANCELLED)

	def test_process_departures_command(self):
		ride = self.publish(hours=-1)
		out = StringIO()

		call_command('process_departures', stdout=out)

		ride.refresh_from_db()
		self.assertEqual(ride.status, Ride.STATUS_DEPARTED)
		self.assertIn('Marked 1 ride(s) as departed', out.getvalue())

	def test_process_departures_command_with_explicit_time(self):
		ride = self.publish(hours=2)
		later = (timezone.now() + timedelta(hours=3)).isoformat()

		call_command('process_departures', now=later, stdout=StringIO())

		ride.refresh_from_db()
		self.assertEqual(ride.status, Ride.STATUS_DEPARTED)

	def test_departure_task(self):
		self.publish(hours=-1)
		self.publish(hours=-3)

		self.assertEqual(depart_due_rides_task(), 2)
		self.assertEqual(Ride.objects.filter(status=Ride.STATUS_DEPARTED).count(), 2)


class RideViewTests(RideTestMixin, TestCase):
	def setUp(self):
		super().setUp()
		self.factory = APIRequestFactory()

	def test_search_endpoint_filters_and_orders(self):
		later = self.publish(hours=30)
		sooner = self.publish(hours=3)
		self.publish(hours=4, destination='Goa')

		request = self.factory.get('/api/rides/', {'destination': 'mumbai', 'min_seats': 2})
		force_authenticate(request, user=self.p1)
		response = search_rides(request)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['count'], 2)
		self.assertEqual([r['id'] for r in response.data['rides']], [sooner.id, later.id])
		self.assertEqual(response.data['rides'][0]['driver']['username'], 'driver')

	def test_search_endpoint_rejects_bad_params(self):
		request = self.factory.get('/api/rides/', {'min_seats': 0})
		force_authenticate(request, user=self.p1)
		response = search_rides(request)

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['kind'], 'validation_error')

	def test_ride_detail_not_found_payload(self):
		request = self.factory.get('/api/rides/999/')
		force_authenticate(request, user=self.p1)
		response = ride_detail(request, ride_id=999)

		self.assertEqual(response.status_code, 404)
		self.assertEqual(response.data['kind'], 'not_found')
		self.assertIn('999', response.data['message'])


class CleanupCommandTests(RideTestMixin, TestCase):
	def test_old_decided_requests_removed_but_trips_kept(self):
		ride = self.publish()
		declined = ride_management.submit(ride.id, self.p1)
		ride_management.decline(declined.id)
		booked = ride_management.submit(ride.id, self.p2)
		ride_management.accept(booked.id)
		catalog.cancel(ride.id)
		fresh = ride_management.submit(self.publish().id, self.p1)
		ride_management.cancel_request(fresh.id, self.p1)

		RideRequest.objects.exclude(id=fresh.id).update(decided_at=timezone.now() - timedelta(days=40))

		call_command('cleanup_old_data', days=30, dry_run=True, stdout=StringIO())
		self.assertEqual(RideRequest.objects.count(), 3)

		call_command('cleanup_old_data', days=30, stdout=StringIO())
		self.assertEqual(set(RideRequest.objects.values_list('id', flat=True)), {booked.id, fresh.id})
