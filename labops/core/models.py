from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Staff account; role decides whether the user administers work or performs it"""
    ROLE_ADMIN = 'ADMIN'
    ROLE_TECHNICIAN = 'TECHNICIAN'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Admin'),
        (ROLE_TECHNICIAN, 'Technician'),
    ]

    name = models.CharField(max_length=200, blank=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_TECHNICIAN)
    phone = models.CharField(max_length=20, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_admin_role(self):
        return self.role == self.ROLE_ADMIN

    @property
    def is_technician_role(self):
        return self.role == self.ROLE_TECHNICIAN

    @property
    def display_name(self):
        """Name shown in history entries and notification messages"""
        return self.name or self.email or self.username

    def __str__(self):
        return self.display_name

    class Meta:
        db_table = 'users'
        indexes = [
            models.Index(fields=['role'], name='idx_user_role'),
        ]
