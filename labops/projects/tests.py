"""
Tests for project number allocation, project creation and the projects API
"""
import re
import time
from django.test import TestCase, TransactionTestCase, override_settings
from rest_framework import status
from labops.core.exceptions import AllocationExhausted, ValidationError
from labops.core.test_utils import TestDataFactory, AuthenticatedAPIClient, run_concurrently
from labops.projects.models import Project
from labops.projects.services import MAX_INSERT_ATTEMPTS, create_project
from labops.projects.utils import ProjectNumberAllocator, allocate_project_number, validate_project_number_candidate

PROJECT_NUMBER_RE = re.compile(r'^MAK-\d{4}-\d{4}$')


def scripted(*values):
    """number_source returning the given draws in order"""
    draws = iter(values)
    return lambda: next(draws)


class ScriptedAllocator:
    """Hands out fixed numbers without checking the database, like a racing allocator would"""

    def __init__(self, numbers):
        self.numbers = list(numbers)
        self.calls = 0

    def allocate(self, candidate=None):
        self.calls += 1
        return self.numbers.pop(0)


@override_settings(PROJECT_NUMBER_PREFIX='MAK', PROJECT_NUMBER_MAX_ATTEMPTS=50)
class ProjectNumberAllocatorTests(TestCase):

    def test_generated_number_format(self):
        number = ProjectNumberAllocator(year=2025, number_source=scripted(7)).allocate()
        self.assertEqual(number, 'MAK-2025-0007')
        self.assertRegex(allocate_project_number(), PROJECT_NUMBER_RE)

    def test_collision_retries_until_free(self):
        TestDataFactory.create_project(project_number='MAK-2025-0005')
        TestDataFactory.create_project(project_number='MAK-2025-0017')
        allocator = ProjectNumberAllocator(year=2025, number_source=scripted(5, 17, 9999))
        self.assertEqual(allocator.allocate(), 'MAK-2025-9999')

    def test_finds_last_free_number_in_nearly_full_space(self):
        for value in range(9):
            TestDataFactory.create_project(project_number=f'MAK-2025-{value:04d}')
        allocator = ProjectNumberAllocator(year=2025, space=10, number_source=scripted(*range(10)))
        self.assertEqual(allocator.allocate(), 'MAK-2025-0009')

    def test_exhaustion_raises_instead_of_looping(self):
        TestDataFactory.create_project(project_number='MAK-2025-0001')
        allocator = ProjectNumberAllocator(year=2025, max_attempts=3, number_source=lambda: 1)
        with self.assertRaises(AllocationExhausted):
            allocator.allocate()

    def test_sequential_allocations_are_unique(self):
        allocator = ProjectNumberAllocator(year=2025, space=2000)
        seen = set()
        for i in range(1000):
            number = allocator.allocate()
            self.assertNotIn(number, seen)
            seen.add(number)
            Project.objects.create(project_number=number, project_name=f'Bulk {i}')
        self.assertEqual(len(seen), 1000)

    def test_candidate_with_forbidden_characters(self):
        for bad in ['MAK/2025', 'A\\B', 'X:1', 'who?', 'a*b', 'q"t', '<x>', 'p|q']:
            with self.assertRaises(ValidationError):
                ProjectNumberAllocator().allocate(bad)

    def test_candidate_is_stripped_and_checked_for_use(self):
        self.assertEqual(validate_project_number_candidate('  CUSTOM-1  '), 'CUSTOM-1')
        TestDataFactory.create_project(project_number='CUSTOM-1')
        with self.assertRaises(ValidationError):
            ProjectNumberAllocator().allocate('CUSTOM-1')

    def test_empty_candidate(self):
        with self.assertRaises(ValidationError):
            validate_project_number_candidate('   ')


@override_settings(PROJECT_NUMBER_PREFIX='MAK')
class CreateProjectTests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin()

    def test_create_allocates_number(self):
        project = create_project('  Bridge Deck  ', customer_emails=['a@x.test'], created_by=self.admin)
        self.assertEqual(project.project_name, 'Bridge Deck')
        self.assertRegex(project.project_number, PROJECT_NUMBER_RE)
        self.assertEqual(project.customer_emails, ['a@x.test'])
        self.assertEqual(project.created_by, self.admin)

    def test_insert_collision_retries_with_new_number(self):
        TestDataFactory.create_project(project_number='MAK-2025-0001')
        allocator = ScriptedAllocator(['MAK-2025-0001', 'MAK-2025-0002'])
        project = create_project('Parking Garage', allocator=allocator)
        self.assertEqual(project.project_number, 'MAK-2025-0002')
        self.assertEqual(allocator.calls, 2)

    def test_insert_collisions_exhaust(self):
        TestDataFactory.create_project(project_number='MAK-2025-0001')
        allocator = ScriptedAllocator(['MAK-2025-0001'] * MAX_INSERT_ATTEMPTS)
        with self.assertRaises(AllocationExhausted):
            create_project('Retaining Wall', allocator=allocator)
        self.assertFalse(Project.objects.filter(project_name='Retaining Wall').exists())

    def test_duplicate_name_rejected(self):
        TestDataFactory.create_project(project_name='Runway 9')
        with self.assertRaises(ValidationError):
            create_project('Runway 9')

    def test_empty_name_rejected(self):
        with self.assertRaises(ValidationError):
            create_project('   ')

    def test_duplicate_emails_rejected(self):
        with self.assertRaises(ValidationError):
            create_project('Culvert', customer_emails=['a@x.test', 'A@x.test'])

    def test_bad_candidate_creates_nothing(self):
        with self.assertRaises(ValidationError):
            create_project('Pier', project_number='MAK/1')
        self.assertEqual(Project.objects.count(), 0)


class SlowAllocator(ProjectNumberAllocator):
    """Pauses between the existence check and the insert"""

    def allocate(self, candidate=None):
        project_number = super().allocate(candidate)
        time.sleep(0.2)
        return project_number


@override_settings(PROJECT_NUMBER_PREFIX='MAK')
class ConcurrentProjectCreationTests(TransactionTestCase):

    def test_racing_creates_get_distinct_numbers(self):
        # Both callers draw 0007 first; the one that commits second must move on
        draws = {'north': scripted(7, 8), 'south': scripted(7, 9)}

        def create(name):
            allocator = SlowAllocator(prefix='MAK', year=2030, max_attempts=5, number_source=draws[name])
            return lambda: create_project(f'Bridge {name}', allocator=allocator)

        outcomes = run_concurrently({name: create(name) for name in draws})

        self.assertEqual(outcomes, {'north': 'ok', 'south': 'ok'})
        numbers = sorted(Project.objects.values_list('project_number', flat=True))
        self.assertEqual(len(set(numbers)), 2)
        self.assertEqual(numbers[0], 'MAK-2030-0007')
        self.assertIn(numbers[1], ('MAK-2030-0008', 'MAK-2030-0009'))


class ProjectAPITests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.tech = TestDataFactory.create_technician()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_admin_creates_project(self):
        response = self.client.post(
            '/api/v1/projects/',
            {'project_name': 'Highway 12', 'customer_emails': ['pm@client.test']},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertRegex(response.data['project_number'], PROJECT_NUMBER_RE)
        self.assertEqual(response.data['created_by'], self.admin.id)

    def test_create_with_forbidden_candidate(self):
        response = self.client.post(
            '/api/v1/projects/', {'project_name': 'Dam', 'project_number': 'MAK:2025'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid')
        self.assertIn('project_number', response.data)

    def test_technician_cannot_create(self):
        self.client.authenticate_user(self.tech)
        response = self.client.post('/api/v1/projects/', {'project_name': 'Nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_project_number_is_immutable(self):
        project = TestDataFactory.create_project(project_number='MAK-2025-0100')
        response = self.client.patch(
            f'/api/v1/projects/{project.id}/', {'project_number': 'MAK-2025-0200'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        project.refresh_from_db()
        self.assertEqual(project.project_number, 'MAK-2025-0100')

    def test_patch_updates_name(self):
        project = TestDataFactory.create_project()
        response = self.client.patch(f'/api/v1/projects/{project.id}/', {'project_name': 'Renamed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['project_name'], 'Renamed')

    def test_list_is_paginated_and_searchable(self):
        TestDataFactory.create_project(project_name='North Bridge', project_number='MAK-2025-0001')
        TestDataFactory.create_project(project_name='South Tunnel', project_number='MAK-2025-0002')
        response = self.client.get('/api/v1/projects/', {'search': 'bridge'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['project_name'], 'North Bridge')
        self.assertEqual(response.data['page'], 1)

    def test_technician_sees_only_projects_with_their_tasks(self):
        mine = TestDataFactory.create_project()
        TestDataFactory.create_project()
        TestDataFactory.create_task(project=mine, technician=self.tech)
        TestDataFactory.create_task(project=mine, technician=self.tech)

        self.client.authenticate_user(self.tech)
        response = self.client.get('/api/v1/projects/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['id'] for row in response.data['results']], [mine.id])
        self.assertEqual(response.data['results'][0]['task_count'], 2)
