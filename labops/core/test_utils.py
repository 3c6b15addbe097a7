"""
Test utilities and factories for creating test data
"""
import random
import string
import threading
from django.contrib.auth import get_user_model
from django.db import connections
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from labops.projects.models import Project
from labops.tasks.models import Task

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""
    __test__ = False

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role=User.ROLE_TECHNICIAN, name=''):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            name=name,
        )

    @staticmethod
    def create_admin(username=None, name='Admin User'):
        return TestDataFactory.create_user(username=username, role=User.ROLE_ADMIN, name=name)

    @staticmethod
    def create_technician(username=None, name=None):
        if name is None:
            name = f'Tech {TestDataFactory.random_string(4)}'
        return TestDataFactory.create_user(username=username, role=User.ROLE_TECHNICIAN, name=name)

    @staticmethod
    def create_project(project_name=None, project_number=None, created_by=None):
        """Create a project directly, bypassing number allocation"""
        if not project_name:
            project_name = f'Project {TestDataFactory.random_string(8)}'
        if not project_number:
            project_number = f'TST-{TestDataFactory.random_string(8).upper()}'
        return Project.objects.create(
            project_name=project_name,
            project_number=project_number,
            created_by=created_by,
        )

    @staticmethod
    def create_task(project=None, technician=None, task_type=Task.TYPE_DENSITY_MEASUREMENT,
                    status=Task.STATUS_ASSIGNED, **fields):
        """Create a task in any status, bypassing the workflow"""
        return Task.objects.create(
            project=project or TestDataFactory.create_project(),
            assigned_technician=technician,
            task_type=task_type,
            status=status,
            **fields
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()


def run_concurrently(calls, timeout=10):
    """
    Run named callables in threads released together by a barrier.

    Returns {name: 'ok'} for calls that returned and {name: <exception class
    name>} for calls that raised. Needs a TransactionTestCase and a
    file-backed test database so each thread gets its own connection.
    """
    barrier = threading.Barrier(len(calls))
    outcomes = {}

    def worker(name, call):
        try:
            barrier.wait(timeout=timeout)
            call()
            outcomes[name] = 'ok'
        except Exception as exc:
            outcomes[name] = type(exc).__name__
        finally:
            connections.close_all()

    threads = [threading.Thread(target=worker, args=(name, call)) for name, call in calls.items()]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout)
    return outcomes
