"""
Tests for accounts, auth endpoints and the API error format
"""
from io import StringIO
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIRequestFactory
from labops.core.exceptions import (
    InvalidTransition, ReassignmentNotConfirmed, AllocationExhausted, InvalidDateRange, labops_exception_handler,
)
from labops.core.models import User
from labops.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class UserModelTests(TestCase):

    def test_display_name_prefers_name_then_email(self):
        user = TestDataFactory.create_user(username='jdoe', email='jdoe@lab.test', name='Jane Doe')
        self.assertEqual(user.display_name, 'Jane Doe')
        user.name = ''
        self.assertEqual(user.display_name, 'jdoe@lab.test')
        user.email = ''
        self.assertEqual(user.display_name, 'jdoe')

    def test_role_flags(self):
        admin = TestDataFactory.create_admin()
        tech = TestDataFactory.create_technician()
        self.assertTrue(admin.is_admin_role)
        self.assertFalse(admin.is_technician_role)
        self.assertTrue(tech.is_technician_role)
        self.assertFalse(tech.is_admin_role)


class AuthAPITests(TestCase):

    def setUp(self):
        self.tech = TestDataFactory.create_technician(username='fieldtech', name='Field Tech')
        self.client = AuthenticatedAPIClient()

    def test_login_returns_tokens_and_user(self):
        response = self.client.post(
            '/api/v1/auth/login/', {'username': 'fieldtech', 'password': 'testpass123'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['role'], User.ROLE_TECHNICIAN)

    def test_login_with_wrong_password(self):
        response = self.client.post(
            '/api/v1/auth/login/', {'username': 'fieldtech', 'password': 'nope'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_reports_role_flags(self):
        self.client.authenticate_user(self.tech)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], 'fieldtech')
        self.assertTrue(response.data['is_technician'])
        self.assertFalse(response.data['is_admin'])

    def test_me_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class TechnicianAPITests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.tech = TestDataFactory.create_technician(name='Alice')
        self.client = AuthenticatedAPIClient()

    def test_list_only_active_technicians(self):
        inactive = TestDataFactory.create_technician(name='Gone')
        inactive.is_active = False
        inactive.save()

        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/technicians/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        ids = [row['id'] for row in response.data]
        self.assertEqual(ids, [self.tech.id])

    def test_admin_creates_technician(self):
        self.client.authenticate_user(self.admin)
        data = {
            'username': 'newtech',
            'email': 'newtech@lab.test',
            'name': 'New Tech',
            'password': 'Concrete-Cyl1nders',
            'password_confirm': 'Concrete-Cyl1nders',
        }
        response = self.client.post('/api/v1/technicians/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        created = User.objects.get(username='newtech')
        self.assertEqual(created.role, User.ROLE_TECHNICIAN)
        self.assertTrue(created.check_password('Concrete-Cyl1nders'))

    def test_duplicate_email_rejected(self):
        self.client.authenticate_user(self.admin)
        data = {
            'username': 'other',
            'email': self.tech.email.upper(),
            'password': 'Concrete-Cyl1nders',
            'password_confirm': 'Concrete-Cyl1nders',
        }
        response = self.client.post('/api/v1/technicians/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('email', response.data)

    def test_technician_cannot_create_technician(self):
        self.client.authenticate_user(self.tech)
        response = self.client.post('/api/v1/technicians/', {'username': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ExceptionHandlerTests(TestCase):

    def _render(self, exc):
        request = APIRequestFactory().get('/')
        return labops_exception_handler(exc, {'request': request, 'view': None})

    def test_invalid_transition_carries_states(self):
        response = self._render(InvalidTransition('ASSIGNED', 'APPROVED'))
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'invalid_transition')
        self.assertEqual(response.data['current_status'], 'ASSIGNED')
        self.assertEqual(response.data['attempted_status'], 'APPROVED')
        self.assertIn('ASSIGNED', response.data['error'])

    def test_status_codes(self):
        self.assertEqual(self._render(ReassignmentNotConfirmed()).status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(self._render(AllocationExhausted()).status_code, status.HTTP_503_SERVICE_UNAVAILABLE)

    def test_validation_list_is_wrapped(self):
        response = self._render(InvalidDateRange())
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_date_range')
        self.assertEqual(response.data['error'], InvalidDateRange.default_detail)
        self.assertIn('errors', response.data)

    def test_unhandled_exception_passes_through(self):
        self.assertIsNone(self._render(RuntimeError('boom')))


class CreateAdminCommandTests(TestCase):

    def test_creates_admin(self):
        out = StringIO()
        call_command('create_admin', 'boss', '--email', 'boss@lab.test', '--name', 'The Boss',
                     '--password', 'Strong-Pass-123', stdout=out)
        user = User.objects.get(username='boss')
        self.assertTrue(user.is_admin_role)
        self.assertTrue(user.is_staff)
        self.assertTrue(user.check_password('Strong-Pass-123'))
        self.assertIn('Created admin boss', out.getvalue())

    def test_promotes_existing_user(self):
        tech = TestDataFactory.create_technician(username='promoted')
        call_command('create_admin', 'promoted', stdout=StringIO())
        tech.refresh_from_db()
        self.assertEqual(tech.role, User.ROLE_ADMIN)
