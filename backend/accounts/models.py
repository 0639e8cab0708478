from django.db import models
from django.contrib.auth.models import AbstractUser


class User(AbstractUser):
    """Extended user model with role selection"""
    ROLE_PASSENGER = 'passenger'
    ROLE_DRIVER = 'driver'
    ROLE_CHOICES = [
        (ROLE_PASSENGER, 'Passenger'),
        (ROLE_DRIVER, 'Driver'),
    ]

    # Role & basic info
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_PASSENGER)
    phone_number = models.CharField(max_length=15, blank=True)

    class Meta:
        db_table = 'users'

    @property
    def is_driver(self):
        return self.role == self.ROLE_DRIVER

    @property
    def is_passenger(self):
        return self.role == self.ROLE_PASSENGER

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"
