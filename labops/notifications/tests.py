"""
Tests for task event notifications and the notifications API
"""
import datetime
from unittest import mock
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from labops.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from labops.notifications.models import Notification
from labops.tasks.assignment import create_task, reassign_task
from labops.tasks.models import Task
from labops.tasks.workflow import approve_task, reject_task, start_task, submit_task


class TaskNotificationTests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin(name='Dana Admin')
        self.second_admin = TestDataFactory.create_admin(name='Sam Admin')
        self.tech = TestDataFactory.create_technician(name='Tom Tech')
        self.other_tech = TestDataFactory.create_technician(name='Olga Other')
        self.project = TestDataFactory.create_project(project_number='MAK-2025-0042')

    def test_assignment_notifies_technician(self):
        with self.captureOnCommitCallbacks(execute=True):
            task = create_task(self.project.id, Task.TYPE_REBAR, technician_id=self.tech.id, actor=self.admin)
        notification = Notification.objects.get(user=self.tech)
        self.assertEqual(notification.message, 'Admin assigned Rebar for Project MAK-2025-0042')
        self.assertEqual(notification.type, Notification.TYPE_INFO)
        self.assertEqual(notification.related_task, task)
        self.assertEqual(notification.related_project, self.project)

    def test_reassignment_notifies_new_technician(self):
        task = TestDataFactory.create_task(project=self.project, technician=self.tech, task_type=Task.TYPE_PROCTOR)
        with self.captureOnCommitCallbacks(execute=True):
            reassign_task(task.id, self.other_tech.id, actor=self.admin)
        notification = Notification.objects.get(user=self.other_tech)
        self.assertEqual(notification.message, 'Admin reassigned Proctor for Project MAK-2025-0042')
        self.assertFalse(Notification.objects.filter(user=self.tech).exists())

    def test_submission_notifies_every_admin(self):
        task = TestDataFactory.create_task(project=self.project, technician=self.tech)
        start_task(task.id, self.tech)
        with self.captureOnCommitCallbacks(execute=True):
            submit_task(task.id, self.tech)
        messages = Notification.objects.filter(type=Notification.TYPE_INFO).values_list('user', 'message')
        expected = 'Tom Tech completed Density Measurement for Project MAK-2025-0042'
        self.assertEqual(
            sorted(messages),
            sorted([(self.admin.id, expected), (self.second_admin.id, expected)])
        )

    def test_rejection_warns_technician(self):
        task = TestDataFactory.create_task(project=self.project, technician=self.tech, status=Task.STATUS_READY_FOR_REVIEW)
        due = (timezone.localdate() + datetime.timedelta(days=3)).isoformat()
        with self.captureOnCommitCallbacks(execute=True):
            reject_task(task.id, self.admin, 'Missing photos', due)
        notification = Notification.objects.get(user=self.tech)
        self.assertEqual(notification.type, Notification.TYPE_WARNING)
        self.assertEqual(
            notification.message,
            'Your task for Project MAK-2025-0042 has been rejected. Please review the remarks and resubmit.'
        )

    def test_approval_congratulates_technician(self):
        task = TestDataFactory.create_task(project=self.project, technician=self.tech, status=Task.STATUS_READY_FOR_REVIEW)
        with self.captureOnCommitCallbacks(execute=True):
            approve_task(task.id, self.admin)
        notification = Notification.objects.get(user=self.tech)
        self.assertEqual(notification.type, Notification.TYPE_SUCCESS)

    def test_start_sends_nothing(self):
        task = TestDataFactory.create_task(project=self.project, technician=self.tech)
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            start_task(task.id, self.tech)
        self.assertEqual(callbacks, [])
        self.assertFalse(Notification.objects.exists())

    def test_nothing_sent_before_commit(self):
        task = TestDataFactory.create_task(project=self.project, technician=self.tech, status=Task.STATUS_READY_FOR_REVIEW)
        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            approve_task(task.id, self.admin)
        self.assertEqual(len(callbacks), 1)
        self.assertFalse(Notification.objects.exists())

    def test_dispatch_failure_does_not_undo_transition(self):
        task = TestDataFactory.create_task(project=self.project, technician=self.tech, status=Task.STATUS_READY_FOR_REVIEW)
        with mock.patch('labops.notifications.signals.notify', side_effect=RuntimeError('mail server down')):
            with self.assertLogs('labops.notifications', level='ERROR'):
                with self.captureOnCommitCallbacks(execute=True):
                    approve_task(task.id, self.admin)
        task.refresh_from_db()
        self.assertEqual(task.status, Task.STATUS_APPROVED)
        self.assertFalse(Notification.objects.exists())


class NotificationAPITests(TestCase):

    def setUp(self):
        self.tech = TestDataFactory.create_technician()
        self.other = TestDataFactory.create_technician()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.tech)
        self.first = Notification.objects.create(user=self.tech, message='first')
        self.second = Notification.objects.create(user=self.tech, message='second', is_read=True)
        self.foreign = Notification.objects.create(user=self.other, message='not yours')

    def test_list_own_notifications(self):
        response = self.client.get('/api/v1/notifications/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual({row['message'] for row in response.data['results']}, {'first', 'second'})

    def test_list_unread_only(self):
        response = self.client.get('/api/v1/notifications/', {'unread': 'true'})
        self.assertEqual([row['id'] for row in response.data['results']], [self.first.id])

    def test_unread_count(self):
        response = self.client.get('/api/v1/notifications/unread-count/')
        self.assertEqual(response.data, {'count': 1})

    def test_mark_read(self):
        response = self.client.put(f'/api/v1/notifications/{self.first.id}/read/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.first.refresh_from_db()
        self.assertTrue(self.first.is_read)

    def test_cannot_mark_someone_elses(self):
        response = self.client.put(f'/api/v1/notifications/{self.foreign.id}/read/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.foreign.refresh_from_db()
        self.assertFalse(self.foreign.is_read)

    def test_mark_all_read(self):
        Notification.objects.create(user=self.tech, message='third')
        response = self.client.put('/api/v1/notifications/mark-all-read/')
        self.assertEqual(response.data, {'updated': 2})
        self.assertFalse(Notification.objects.filter(user=self.tech, is_read=False).exists())
        self.foreign.refresh_from_db()
        self.assertFalse(self.foreign.is_read)
