from django.test import TestCase
from rest_framework.test import APIClient

from .models import User


class AuthApiTests(TestCase):
	def setUp(self):
		self.client = APIClient()

	def _register(self, **overrides):
		data = {
			'username': 'asha',
			'password': 'secret-pass-1',
			'email': 'asha@example.com',
			'role': 'driver',
			'phone_number': '9000000010',
		}
		data.update(overrides)
		return self.client.post('/api/auth/register/', data, format='json')

	def test_register_returns_tokens(self):
		response = self._register()

		self.assertEqual(response.status_code, 201)
		self.assertEqual(response.data['user']['role'], 'driver')
		self.assertIn('access', response.data['tokens'])

		user = User.objects.get(username='asha')
		self.assertTrue(user.is_driver)
		self.assertFalse(user.is_passenger)

	def test_register_rejects_unknown_role(self):
		response = self._register(role='pilot')

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['kind'], 'validation_error')
		self.assertIn('role', response.data['errors'])

	def test_login_and_use_access_token(self):
		self._register(role='passenger')

		response = self.client.post(
			'/api/auth/login/',
			{'username': 'asha', 'password': 'secret-pass-1'},
			format='json'
		)
		self.assertEqual(response.status_code, 200)
		access = response.data['tokens']['access']
		refresh = response.data['tokens']['refresh']

		self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')
		response = self.client.get('/api/auth/me/')
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['role'], 'passenger')

		self.client.credentials()
		response = self.client.post('/api/auth/refresh/', {'refresh': refresh}, format='json')
		self.assertEqual(response.status_code, 200)
		self.assertIn('access', response.data)

	def test_login_with_wrong_password(self):
		self._register()

		response = self.client.post(
			'/api/auth/login/',
			{'username': 'asha', 'password': 'nope'},
			format='json'
		)

		self.assertEqual(response.status_code, 400)

	def test_refresh_with_bad_token(self):
		response = self.client.post('/api/auth/refresh/', {'refresh': 'garbage'}, format='json')

		self.assertEqual(response.status_code, 401)
		self.assertEqual(response.data['kind'], 'not_authenticated')

	def test_me_cannot_change_role(self):
		user = User.objects.create_user(username='ravi', password='pass1234', role='passenger')
		self.client.force_authenticate(user=user)

		response = self.client.patch('/api/auth/me/', {'role': 'driver', 'first_name': 'Ravi'}, format='json')

		self.assertEqual(response.status_code, 200)
		user.refresh_from_db()
		self.assertEqual(user.role, 'passenger')
		self.assertEqual(user.first_name, 'Ravi')
