from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import User
from history.models import HistoryEntry
from rides.models import Ride, RideRequest
from services import catalog, ride_management


class DriverApiTests(TestCase):
	def setUp(self):
		self.client = APIClient()
		self.driver = User.objects.create_user(
			username='driver',
			password='driver1234',
			role='driver'
		)
		self.other_driver = User.objects.create_user(
			username='other_driver',
			password='driver1234',
			role='driver'
		)
		self.passenger = User.objects.create_user(
			username='passenger',
			password='pass1234',
			role='passenger'
		)
		self.client.force_authenticate(user=self.driver)

	def _ride(self, seats=3, hours=12):
		return catalog.publish(
			self.driver,
			origin='Kothrud',
			destination='Hinjewadi',
			departure_at=timezone.now() + timedelta(hours=hours),
			total_seats=seats,
			price_per_seat=12000,
		)

	def test_publish_ride(self):
		response = self.client.post('/api/driver/rides/', {
			'origin': 'Kothrud',
			'destination': 'Hinjewadi',
			'departure_at': (timezone.now() + timedelta(days=1)).isoformat(),
			'total_seats': 3,
			'price_per_seat': 12000,
			'vehicle_type': 'hatchback',
		}, format='json')

		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['available_seats'], 3)
		self.assertEqual(response.data['status'], 'open')
		self.assertEqual(Ride.objects.get().driver, self.driver)

	def test_publish_rejects_zero_seats(self):
		response = self.client.post('/api/driver/rides/', {
			'origin': 'Kothrud',
			'destination': 'Hinjewadi',
			'departure_at': (timezone.now() + timedelta(days=1)).isoformat(),
			'total_seats': 0,
		}, format='json')

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['kind'], 'validation_error')
		self.assertIn('total_seats', response.data['errors'])

	def test_passengers_cannot_use_driver_endpoints(self):
		self.client.force_authenticate(user=self.passenger)
		response = self.client.get('/api/driver/rides/')

		self.assertEqual(response.status_code, 403)
		self.assertEqual(response.data['kind'], 'permission_denied')

	def test_list_own_rides(self):
		ride = self._ride()
		catalog.publish(
			self.other_driver,
			origin='A', destination='B',
			departure_at=timezone.now() + timedelta(hours=1),
			total_seats=1,
		)

		response = self.client.get('/api/driver/rides/')

		self.assertEqual(response.status_code, 200)
		self.assertEqual([r['id'] for r in response.data['rides']], [ride.id])

	def test_accept_and_decline_flow(self):
		ride = self._ride(seats=3)
		r1 = ride_management.submit(ride.id, self.passenger, seats=2)
		other = User.objects.create_user(username='p2', password='pass1234', role='passenger')
		r2 = ride_management.submit(ride.id, other, seats=2)

		response = self.client.get(f'/api/driver/rides/{ride.id}/requests/')
		self.assertEqual([r['id'] for r in response.data['requests']], [r1.id, r2.id])

		response = self.client.post(f'/api/driver/requests/{r1.id}/accept/')
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['available_seats'], 1)

		response = self.client.post(f'/api/driver/requests/{r2.id}/accept/')
		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['kind'], 'capacity_error')

		response = self.client.post(f'/api/driver/requests/{r2.id}/decline/')
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['request']['status'], 'declined')

		response = self.client.post(f'/api/driver/requests/{r2.id}/decline/')
		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['kind'], 'invalid_state')

	def test_other_driver_cannot_decide(self):
		ride = self._ride()
		rr = ride_management.submit(ride.id, self.passenger)

		self.client.force_authenticate(user=self.other_driver)
		response = self.client.post(f'/api/driver/requests/{rr.id}/accept/')

		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['kind'], 'not_participant')

		response = self.client.get(f'/api/driver/rides/{ride.id}/requests/')
		self.assertEqual(response.status_code, 409)

	def test_cancel_ride(self):
		ride = self._ride()
		rr = ride_management.submit(ride.id, self.passenger)
		ride_management.accept(rr.id)

		response = self.client.post(f'/api/driver/rides/{ride.id}/cancel/')

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['status'], 'cancelled')
		self.assertEqual(response.data['available_seats'], 3)
		rr.refresh_from_db()
		self.assertEqual(rr.status, RideRequest.STATUS_DECLINED)

	def test_depart_then_complete(self):
		ride = self._ride()
		rr = ride_management.submit(ride.id, self.passenger, seats=2)
		ride_management.accept(rr.id)

		response = self.client.post(f'/api/driver/rides/{ride.id}/complete/')
		self.assertEqual(response.status_code, 409)

		response = self.client.post(f'/api/driver/rides/{ride.id}/depart/')
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['status'], 'departed')

		response = self.client.post(f'/api/driver/rides/{ride.id}/complete/')
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['completed'], 1)
		self.assertEqual(response.data['entries'][0]['seats'], 2)

		entry = HistoryEntry.objects.get(request=rr)
		self.assertEqual(entry.status, HistoryEntry.STATUS_COMPLETED)
		self.assertEqual(entry.driver, self.driver)
