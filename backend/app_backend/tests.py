from unittest.mock import patch

from django.test import TestCase
from rest_framework.test import APIRequestFactory

from .views import health_check


@patch('app_backend.views.redis.Redis.from_url')
@patch('app_backend.views.celery_app')
class HealthCheckTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()

	def test_healthy_when_a_worker_answers(self, celery_app, from_url):
		celery_app.control.ping.return_value = [{'celery@worker1': {'ok': 'pong'}}]

		response = health_check(self.factory.get('/health/'))

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['status'], 'healthy')
		self.assertEqual(response.data['services']['celery'], 'healthy: 1 worker(s)')
		celery_app.control.ping.assert_called_once_with(timeout=1)

	def test_unhealthy_when_no_worker_answers(self, celery_app, from_url):
		celery_app.control.ping.return_value = []

		response = health_check(self.factory.get('/health/'))

		self.assertEqual(response.status_code, 503)
		self.assertEqual(response.data['services']['celery'], 'unhealthy: no workers responded')

	def test_unhealthy_when_broker_unreachable(self, celery_app, from_url):
		celery_app.control.ping.side_effect = ConnectionError('broker down')

		response = health_check(self.factory.get('/health/'))

		self.assertEqual(response.status_code, 503)
		self.assertEqual(response.data['services']['celery'], 'unhealthy: broker down')
		self.assertEqual(response.data['services']['redis'], 'healthy')
