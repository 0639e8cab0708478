from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import User
from rides.models import RideRequest
from services import catalog, ride_management


class PassengerApiTests(TestCase):
	def setUp(self):
		self.client = APIClient()
		self.driver = User.objects.create_user(
			username='driver',
			password='driver1234',
			role='driver'
		)
		self.passenger = User.objects.create_user(
			username='passenger',
			password='pass1234',
			role='passenger'
		)
		self.ride = catalog.publish(
			self.driver,
			origin='Baner',
			destination='Swargate',
			departure_at=timezone.now() + timedelta(hours=6),
			total_seats=2,
			price_per_seat=8000,
		)
		self.client.force_authenticate(user=self.passenger)

	def test_request_seats(self):
		response = self.client.post(
			f'/api/passenger/rides/{self.ride.id}/request/',
			{'seats': 2, 'message': 'Two of us'},
			format='json'
		)

		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['status'], 'pending')
		self.assertEqual(response.data['seats_requested'], 2)
		self.assertEqual(response.data['ride']['id'], self.ride.id)

	def test_request_errors(self):
		url = f'/api/passenger/rides/{self.ride.id}/request/'

		response = self.client.post(url, {'seats': 3}, format='json')
		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['kind'], 'capacity_error')

		response = self.client.post(url, {'seats': 0}, format='json')
		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['kind'], 'validation_error')

		self.client.post(url, {'seats': 1}, format='json')
		response = self.client.post(url, {'seats': 1}, format='json')
		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['kind'], 'duplicate_request')

		response = self.client.post('/api/passenger/rides/999/request/', {'seats': 1}, format='json')
		self.assertEqual(response.status_code, 404)

	def test_drivers_cannot_request(self):
		self.client.force_authenticate(user=self.driver)
		response = self.client.post(f'/api/passenger/rides/{self.ride.id}/request/', {'seats': 1}, format='json')

		self.assertEqual(response.status_code, 403)

	def test_my_requests_and_cancel(self):
		rr = ride_management.submit(self.ride.id, self.passenger)

		response = self.client.get('/api/passenger/requests/')
		self.assertEqual(response.data['count'], 1)
		self.assertEqual(response.data['requests'][0]['ride']['driver_id'], self.driver.id)

		response = self.client.post(f'/api/passenger/requests/{rr.id}/cancel/')
		self.assertEqual(response.status_code, 200)
		rr.refresh_from_db()
		self.assertEqual(rr.status, RideRequest.STATUS_CANCELLED)

		response = self.client.post(f'/api/passenger/requests/{rr.id}/cancel/')
		self.assertEqual(response.status_code, 409)

	def test_unauthenticated_requests_rejected(self):
		self.client.force_authenticate(user=None)
		response = self.client.get('/api/passenger/requests/')

		self.assertEqual(response.status_code, 401)
		self.assertEqual(response.data['kind'], 'not_authenticated')
