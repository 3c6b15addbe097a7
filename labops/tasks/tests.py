"""
Tests for the task lifecycle, assignment, rejection input handling, dashboards and the tasks API
"""
import datetime
import time
from unittest import mock
from django.test import TestCase, TransactionTestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.exceptions import PermissionDenied
from labops.core.exceptions import (
    InvalidDateRange, InvalidTransition, NotFound, ReassignmentNotConfirmed, ValidationError,
)
from labops.core.test_utils import TestDataFactory, AuthenticatedAPIClient, run_concurrently
from labops.tasks import dashboards, utils as task_utils
from labops.tasks.assignment import assign_task, clean_schedule, create_task, reassign_task, update_task_details
from labops.tasks.models import Task, TaskHistory
from labops.tasks.validators import clean_rejection, normalize_resubmission_date, parse_calendar_date
from labops.tasks.workflow import (
    ALLOWED_TRANSITIONS, allowed_targets, approve_task, can_transition, mark_field_complete, reject_task,
    start_task, submit_task,
)

ALL_STATUSES = [choice for choice, _ in Task.STATUS_CHOICES]


def in_days(days):
    return timezone.localdate() + datetime.timedelta(days=days)


class DateValidatorTests(TestCase):

    def test_parse_calendar_date(self):
        self.assertEqual(parse_calendar_date('2025-03-09', 'd'), datetime.date(2025, 3, 9))
        self.assertEqual(parse_calendar_date(datetime.date(2025, 3, 9), 'd'), datetime.date(2025, 3, 9))
        self.assertIsNone(parse_calendar_date('', 'd'))
        self.assertIsNone(parse_calendar_date(None, 'd'))

    def test_parse_calendar_date_drops_time_of_day(self):
        late_evening = datetime.datetime(2025, 3, 9, 23, 30, tzinfo=datetime.timezone.utc)
        self.assertEqual(parse_calendar_date(late_evening, 'd'), datetime.date(2025, 3, 9))

    def test_parse_calendar_date_rejects_garbage(self):
        for raw in ['03/09/2025', '2025-02-30', 'tomorrow', '2025-13-01']:
            with self.assertRaises(ValidationError):
                parse_calendar_date(raw, 'd')

    def test_resubmission_date_formats(self):
        today = datetime.date(2025, 1, 10)
        expected = datetime.date(2025, 3, 15)
        self.assertEqual(normalize_resubmission_date('2025-03-15', today=today), expected)
        self.assertEqual(normalize_resubmission_date('03-15-2025', today=today), expected)
        self.assertEqual(normalize_resubmission_date('03/15/2025', today=today), expected)
        self.assertEqual(normalize_resubmission_date('3/5/2025', today=today), datetime.date(2025, 3, 5))

    def test_resubmission_date_invalid_calendar_values(self):
        today = datetime.date(2025, 1, 10)
        for raw in ['13-01-2025', '02-30-2025', '2025-02-29', '00-10-2025', '15.03.2025', '']:
            with self.assertRaises(ValidationError):
                normalize_resubmission_date(raw, today=today)

    def test_resubmission_date_in_past(self):
        today = datetime.date(2025, 1, 10)
        self.assertEqual(normalize_resubmission_date('01-10-2025', today=today), today)
        with self.assertRaises(ValidationError):
            normalize_resubmission_date('01-09-2025', today=today)

    def test_clean_rejection(self):
        remarks, due = clean_rejection('  Missing compaction data  ', in_days(3).isoformat())
        self.assertEqual(remarks, 'Missing compaction data')
        self.assertEqual(due, in_days(3))
        with self.assertRaises(ValidationError):
            clean_rejection('   ', in_days(3).isoformat())
        with self.assertRaises(ValidationError):
            clean_rejection('Fix it', None)


class TransitionTableTests(TestCase):

    def test_table_edges(self):
        self.assertEqual(len(ALLOWED_TRANSITIONS), 5)
        self.assertTrue(can_transition(Task.STATUS_ASSIGNED, Task.STATUS_IN_PROGRESS_TECH))
        self.assertTrue(can_transition(Task.STATUS_REJECTED_NEEDS_FIX, Task.STATUS_READY_FOR_REVIEW))
        self.assertFalse(can_transition(Task.STATUS_ASSIGNED, Task.STATUS_APPROVED))
        self.assertFalse(can_transition(Task.STATUS_IN_PROGRESS_TECH, Task.STATUS_ASSIGNED))

    def test_approved_is_terminal(self):
        self.assertEqual(allowed_targets(Task.STATUS_APPROVED), [])
        for target in ALL_STATUSES:
            self.assertFalse(can_transition(Task.STATUS_APPROVED, target))

    def test_no_self_loops(self):
        for current in ALL_STATUSES:
            self.assertFalse(can_transition(current, current))


class WorkflowTests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin(name='Dana Admin')
        self.tech = TestDataFactory.create_technician(name='Tom Tech')
        self.other_tech = TestDataFactory.create_technician(name='Olga Other')
        self.project = TestDataFactory.create_project(project_number='MAK-2025-0042')
        self.task = TestDataFactory.create_task(project=self.project, technician=self.tech)

    def test_full_happy_path(self):
        start_task(self.task.id, self.tech)
        submit_task(self.task.id, self.tech)
        task = approve_task(self.task.id, self.admin)

        task.refresh_from_db()
        self.assertEqual(task.status, Task.STATUS_APPROVED)
        self.assertIsNotNone(task.submitted_at)
        self.assertTrue(task.report_submitted)
        self.assertIsNotNone(task.completed_at)
        self.assertEqual(task.last_edited_by, self.admin)
        self.assertEqual(task.last_edited_by_role, 'ADMIN')
        actions = list(task.history.order_by('id').values_list('action_type', flat=True))
        self.assertEqual(actions, [
            TaskHistory.ACTION_STATUS_CHANGED, TaskHistory.ACTION_SUBMITTED, TaskHistory.ACTION_APPROVED,
        ])

    def test_skipping_review_is_rejected_without_changes(self):
        with self.assertRaises(InvalidTransition) as ctx:
            approve_task(self.task.id, self.admin)
        self.assertEqual(ctx.exception.current_status, Task.STATUS_ASSIGNED)
        self.assertEqual(ctx.exception.attempted_status, Task.STATUS_APPROVED)
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, Task.STATUS_ASSIGNED)
        self.assertIsNone(self.task.completed_at)
        self.assertFalse(self.task.history.exists())

    def test_start_twice_fails(self):
        start_task(self.task.id, self.tech)
        with self.assertRaises(InvalidTransition):
            start_task(self.task.id, self.tech)

    def test_only_assigned_technician_can_start(self):
        with self.assertRaises(PermissionDenied):
            start_task(self.task.id, self.other_tech)
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, Task.STATUS_ASSIGNED)

    def test_technician_cannot_approve(self):
        task = TestDataFactory.create_task(technician=self.tech, status=Task.STATUS_READY_FOR_REVIEW)
        with self.assertRaises(PermissionDenied):
            approve_task(task.id, self.tech)

    def test_submit_requires_work_started(self):
        with self.assertRaises(InvalidTransition):
            submit_task(self.task.id, self.tech)

    def test_missing_task(self):
        with self.assertRaises(NotFound):
            start_task(999999, self.tech)

    def test_reject_and_resubmit(self):
        task = TestDataFactory.create_task(technician=self.tech, status=Task.STATUS_READY_FOR_REVIEW)
        due = in_days(5)
        reject_task(task.id, self.admin, '  Density readings incomplete ', due.strftime('%m-%d-%Y'))

        task.refresh_from_db()
        self.assertEqual(task.status, Task.STATUS_REJECTED_NEEDS_FIX)
        self.assertEqual(task.rejection_remarks, 'Density readings incomplete')
        self.assertEqual(task.resubmission_due_date, due)
        self.assertEqual(task.assigned_technician, self.tech)
        entry = task.history.get(action_type=TaskHistory.ACTION_REJECTED)
        self.assertEqual(entry.note, 'Density readings incomplete')
        self.assertEqual(entry.actor_name, 'Dana Admin')

        submit_task(task.id, self.tech)
        task.refresh_from_db()
        self.assertEqual(task.status, Task.STATUS_READY_FOR_REVIEW)
        # The last rejection stays visible until approval
        self.assertEqual(task.rejection_remarks, 'Density readings incomplete')
        resubmitted = task.history.get(action_type=TaskHistory.ACTION_SUBMITTED)
        self.assertEqual(resubmitted.note, 'Resubmitted after rejection')

        approve_task(task.id, self.admin)
        task.refresh_from_db()
        self.assertIsNone(task.rejection_remarks)
        self.assertIsNone(task.resubmission_due_date)

    def test_reject_with_empty_remarks_changes_nothing(self):
        task = TestDataFactory.create_task(technician=self.tech, status=Task.STATUS_READY_FOR_REVIEW)
        with self.assertRaises(ValidationError):
            reject_task(task.id, self.admin, '   ', in_days(2).isoformat())
        task.refresh_from_db()
        self.assertEqual(task.status, Task.STATUS_READY_FOR_REVIEW)
        self.assertIsNone(task.rejection_remarks)
        self.assertFalse(task.history.exists())

    def test_reject_with_bad_date_changes_nothing(self):
        task = TestDataFactory.create_task(technician=self.tech, status=Task.STATUS_READY_FOR_REVIEW)
        for bad in ['13-45-2030', in_days(-1).isoformat()]:
            with self.assertRaises(ValidationError):
                reject_task(task.id, self.admin, 'Redo', bad)
        task.refresh_from_db()
        self.assertEqual(task.status, Task.STATUS_READY_FOR_REVIEW)

    def test_reject_requires_ready_for_review(self):
        with self.assertRaises(InvalidTransition):
            reject_task(self.task.id, self.admin, 'Redo', in_days(2).isoformat())

    def test_review_after_approval_fails(self):
        task = TestDataFactory.create_task(technician=self.tech, status=Task.STATUS_READY_FOR_REVIEW)
        second_admin = TestDataFactory.create_admin(name='Second Admin')
        approve_task(task.id, self.admin)
        with self.assertRaises(InvalidTransition) as ctx:
            reject_task(task.id, second_admin, 'Too late', in_days(2).isoformat())
        self.assertEqual(ctx.exception.current_status, Task.STATUS_APPROVED)
        task.refresh_from_db()
        self.assertEqual(task.status, Task.STATUS_APPROVED)
        self.assertIsNone(task.rejection_remarks)

    def test_approved_task_stays_approved(self):
        task = TestDataFactory.create_task(technician=self.tech, status=Task.STATUS_APPROVED)
        for operation in (
            lambda: start_task(task.id, self.tech),
            lambda: submit_task(task.id, self.tech),
            lambda: approve_task(task.id, self.admin),
            lambda: reject_task(task.id, self.admin, 'No', in_days(1).isoformat()),
        ):
            with self.assertRaises(InvalidTransition):
                operation()
        task.refresh_from_db()
        self.assertEqual(task.status, Task.STATUS_APPROVED)

    def test_mark_field_complete(self):
        mark_field_complete(self.task.id, self.tech)
        self.task.refresh_from_db()
        self.assertTrue(self.task.field_completed)
        self.assertIsNotNone(self.task.field_completed_at)
        self.assertEqual(self.task.status, Task.STATUS_ASSIGNED)
        self.assertEqual(self.task.history.filter(action_type=TaskHistory.ACTION_STATUS_CHANGED).count(), 1)

        # Idempotent
        mark_field_complete(self.task.id, self.tech)
        self.assertEqual(self.task.history.count(), 1)


def _slow_lock(task_id):
    """Hold the reloaded row for a moment so racing calls overlap"""
    task = task_utils.lock_task(task_id)
    time.sleep(0.2)
    return task


class ConcurrentReviewTests(TransactionTestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin(name='First Reviewer')
        self.second_admin = TestDataFactory.create_admin(name='Second Reviewer')
        self.tech = TestDataFactory.create_technician(name='Tom Tech')
        self.task = TestDataFactory.create_task(technician=self.tech, status=Task.STATUS_READY_FOR_REVIEW)

    def test_concurrent_approve_and_reject(self):
        with mock.patch('labops.tasks.workflow.lock_task', side_effect=_slow_lock):
            outcomes = run_concurrently({
                'approve': lambda: approve_task(self.task.id, self.admin),
                'reject': lambda: reject_task(self.task.id, self.second_admin, 'fix slump', in_days(3).isoformat()),
            })

        self.assertEqual(sorted(outcomes.values()), ['InvalidTransition', 'ok'])
        self.task.refresh_from_db()
        if outcomes['approve'] == 'ok':
            self.assertEqual(self.task.status, Task.STATUS_APPROVED)
            self.assertIsNone(self.task.rejection_remarks)
        else:
            self.assertEqual(self.task.status, Task.STATUS_REJECTED_NEEDS_FIX)
            self.assertEqual(self.task.rejection_remarks, 'fix slump')
        self.assertEqual(
            self.task.history.filter(
                action_type__in=[TaskHistory.ACTION_APPROVED, TaskHistory.ACTION_REJECTED]
            ).count(),
            1,
        )

    def test_concurrent_approvals(self):
        with mock.patch('labops.tasks.workflow.lock_task', side_effect=_slow_lock):
            outcomes = run_concurrently({
                'first': lambda: approve_task(self.task.id, self.admin),
                'second': lambda: approve_task(self.task.id, self.second_admin),
            })

        self.assertEqual(sorted(outcomes.values()), ['InvalidTransition', 'ok'])
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, Task.STATUS_APPROVED)
        winner = self.admin if outcomes['first'] == 'ok' else self.second_admin
        self.assertEqual(self.task.last_edited_by, winner)
        self.assertEqual(self.task.history.filter(action_type=TaskHistory.ACTION_APPROVED).count(), 1)


class AssignmentTests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin(name='Dana Admin')
        self.tech = TestDataFactory.create_technician(name='Tom Tech')
        self.other_tech = TestDataFactory.create_technician(name='Olga Other')
        self.project = TestDataFactory.create_project()

    def test_create_task_starts_assigned(self):
        task = create_task(
            self.project.id, Task.TYPE_PROCTOR, technician_id=self.tech.id,
            schedule={'scheduled_start_date': '2030-05-01', 'due_date': '2030-05-10'},
            actor=self.admin,
        )
        self.assertEqual(task.status, Task.STATUS_ASSIGNED)
        self.assertEqual(task.assigned_technician, self.tech)
        self.assertEqual(task.scheduled_start_date, datetime.date(2030, 5, 1))
        self.assertIsNone(task.scheduled_end_date)
        self.assertFalse(task.is_report_task)

    def test_create_task_without_technician(self):
        task = create_task(self.project.id, Task.TYPE_REBAR)
        self.assertIsNone(task.assigned_technician)
        self.assertTrue(task.is_report_task)

    def test_create_task_validation(self):
        with self.assertRaises(ValidationError):
            create_task(self.project.id, 'SLUMP_TEST')
        with self.assertRaises(NotFound):
            create_task(999999, Task.TYPE_REBAR)
        with self.assertRaises(NotFound):
            create_task(self.project.id, Task.TYPE_REBAR, technician_id=self.admin.id)
        with self.assertRaises(InvalidDateRange):
            create_task(self.project.id, Task.TYPE_REBAR, schedule={
                'scheduled_start_date': '2030-05-10', 'scheduled_end_date': '2030-05-09', 'date_range': True,
            })
        self.assertFalse(Task.objects.exists())

    def test_clean_schedule_date_range_flag(self):
        values = clean_schedule({
            'scheduled_start_date': '2030-05-01', 'scheduled_end_date': '2030-05-03', 'date_range': False,
        })
        self.assertIsNone(values['scheduled_end_date'])
        values = clean_schedule({'scheduled_start_date': '2030-05-01', 'scheduled_end_date': '2030-05-03'})
        self.assertEqual(values['scheduled_end_date'], datetime.date(2030, 5, 3))
        same_day = clean_schedule({'scheduled_start_date': '2030-05-01', 'scheduled_end_date': '2030-05-01'})
        self.assertEqual(same_day['scheduled_end_date'], datetime.date(2030, 5, 1))

    def test_end_without_start(self):
        with self.assertRaises(InvalidDateRange):
            clean_schedule({'scheduled_end_date': '2030-05-03'})

    def test_unknown_schedule_key(self):
        with self.assertRaises(ValidationError):
            clean_schedule({'scheduled_time': '10:00'})

    def test_assign_unassigned_task(self):
        task = TestDataFactory.create_task(project=self.project)
        assign_task(task.id, self.tech.id, actor=self.admin)
        task.refresh_from_db()
        self.assertEqual(task.assigned_technician, self.tech)
        entry = task.history.get()
        self.assertEqual(entry.action_type, TaskHistory.ACTION_REASSIGNED)
        self.assertEqual(entry.note, 'Task assigned to Tom Tech')

    def test_reassign_in_flight_needs_confirmation(self):
        task = TestDataFactory.create_task(project=self.project, technician=self.tech, status=Task.STATUS_IN_PROGRESS_TECH)
        with self.assertRaises(ReassignmentNotConfirmed):
            reassign_task(task.id, self.other_tech.id, actor=self.admin)
        task.refresh_from_db()
        self.assertEqual(task.assigned_technician, self.tech)

        reassign_task(task.id, self.other_tech.id, confirm_if_in_flight=True, actor=self.admin)
        task.refresh_from_db()
        self.assertEqual(task.assigned_technician, self.other_tech)
        self.assertEqual(task.status, Task.STATUS_IN_PROGRESS_TECH)
        entry = task.history.get(action_type=TaskHistory.ACTION_REASSIGNED)
        self.assertEqual(entry.note, 'Task reassigned from Tom Tech to Olga Other')

    def test_reassign_not_in_flight_needs_no_confirmation(self):
        task = TestDataFactory.create_task(project=self.project, technician=self.tech, status=Task.STATUS_REJECTED_NEEDS_FIX,
                                           rejection_remarks='Redo', resubmission_due_date=in_days(3))
        reassign_task(task.id, self.other_tech.id, actor=self.admin)
        task.refresh_from_db()
        self.assertEqual(task.assigned_technician, self.other_tech)
        self.assertEqual(task.status, Task.STATUS_REJECTED_NEEDS_FIX)

    def test_reassign_approved_task_fails(self):
        task = TestDataFactory.create_task(project=self.project, technician=self.tech, status=Task.STATUS_APPROVED)
        with self.assertRaises(InvalidTransition):
            reassign_task(task.id, self.other_tech.id, confirm_if_in_flight=True, actor=self.admin)

    def test_reschedule_same_technician(self):
        task = TestDataFactory.create_task(
            project=self.project, technician=self.tech,
            scheduled_start_date=datetime.date(2030, 5, 1), scheduled_end_date=datetime.date(2030, 5, 4),
        )
        reassign_task(task.id, self.tech.id, schedule={
            'scheduled_start_date': '2030-06-01', 'due_date': '2030-06-10', 'engagement_notes': ' Gate code 1234 ',
        }, actor=self.admin)
        task.refresh_from_db()
        self.assertEqual(task.scheduled_start_date, datetime.date(2030, 6, 1))
        # Not in date-range mode any more
        self.assertIsNone(task.scheduled_end_date)
        self.assertEqual(task.due_date, datetime.date(2030, 6, 10))
        self.assertEqual(task.engagement_notes, 'Gate code 1234')
        self.assertFalse(task.history.exists())

    def test_reassign_bad_range_changes_nothing(self):
        task = TestDataFactory.create_task(project=self.project, technician=self.tech,
                                           scheduled_start_date=datetime.date(2030, 5, 1))
        with self.assertRaises(InvalidDateRange):
            reassign_task(task.id, self.other_tech.id, schedule={
                'scheduled_end_date': '2030-04-30', 'date_range': True,
            }, actor=self.admin)
        task.refresh_from_db()
        self.assertEqual(task.assigned_technician, self.tech)

    def test_reassign_to_unknown_technician(self):
        task = TestDataFactory.create_task(project=self.project, technician=self.tech)
        with self.assertRaises(NotFound):
            reassign_task(task.id, 999999, actor=self.admin)

    def test_update_details_only_for_own_tasks(self):
        task = TestDataFactory.create_task(project=self.project, technician=self.tech)
        update_task_details(task.id, self.tech, location_notes=' North abutment ')
        task.refresh_from_db()
        self.assertEqual(task.location_notes, 'North abutment')
        with self.assertRaises(NotFound):
            update_task_details(task.id, self.other_tech, location_notes='x')
        with self.assertRaises(ValidationError):
            update_task_details(task.id, self.admin, status=Task.STATUS_APPROVED)


class DashboardTests(TestCase):

    def setUp(self):
        self.today = datetime.date(2030, 6, 15)
        self.tech = TestDataFactory.create_technician()
        self.project = TestDataFactory.create_project()

    def _task(self, **fields):
        fields.setdefault('technician', self.tech)
        return TestDataFactory.create_task(project=self.project, **fields)

    def test_today_matches_due_single_date_and_range(self):
        due = self._task(due_date=self.today)
        single = self._task(scheduled_start_date=self.today)
        ranged = self._task(scheduled_start_date=datetime.date(2030, 6, 14), scheduled_end_date=datetime.date(2030, 6, 16))
        review = self._task(due_date=self.today, status=Task.STATUS_READY_FOR_REVIEW)
        self._task(scheduled_start_date=datetime.date(2030, 6, 16))
        self._task(scheduled_start_date=datetime.date(2030, 6, 10), scheduled_end_date=datetime.date(2030, 6, 14))

        result = list(dashboards.today_tasks(today=self.today))
        self.assertEqual(set(result), {due, single, ranged, review})
        self.assertEqual(result[0], review)

    def test_upcoming_window_excludes_approved(self):
        soon = self._task(due_date=datetime.date(2030, 6, 20))
        overlapping = self._task(scheduled_start_date=datetime.date(2030, 6, 10), scheduled_end_date=datetime.date(2030, 6, 16))
        self._task(due_date=datetime.date(2030, 6, 20), status=Task.STATUS_APPROVED)
        self._task(due_date=datetime.date(2030, 6, 30))
        self._task(due_date=self.today)

        result = set(dashboards.upcoming_tasks(today=self.today))
        self.assertEqual(result, {soon, overlapping})

    def test_overdue(self):
        late = self._task(due_date=datetime.date(2030, 6, 1))
        self._task(due_date=datetime.date(2030, 6, 1), status=Task.STATUS_APPROVED)
        self._task(due_date=self.today)
        self.assertEqual(list(dashboards.overdue_tasks(today=self.today)), [late])

    def test_open_reports(self):
        open_report = self._task(field_completed=True)
        self._task(field_completed=True, report_submitted=True, status=Task.STATUS_READY_FOR_REVIEW)
        self._task()
        self.assertEqual(list(dashboards.open_report_tasks()), [open_report])

    def test_technician_scope(self):
        other = TestDataFactory.create_technician()
        mine = self._task(due_date=self.today)
        self._task(due_date=self.today, technician=other)
        scoped = Task.objects.filter(assigned_technician=self.tech)
        self.assertEqual(list(dashboards.today_tasks(scoped, today=self.today)), [mine])
        tomorrow = self._task(scheduled_start_date=datetime.date(2030, 6, 16))
        self.assertEqual(list(dashboards.tomorrow_tasks(scoped, today=self.today)), [tomorrow])

    def test_activity_by_day(self):
        admin = TestDataFactory.create_admin()
        task = self._task(status=Task.STATUS_IN_PROGRESS_TECH)
        submit_task(task.id, self.tech)
        approve_task(task.id, admin)
        today = timezone.localdate()
        self.assertEqual(list(dashboards.activity_tasks(today)), [Task.objects.get(pk=task.pk)])
        self.assertEqual(list(dashboards.activity_tasks(today - datetime.timedelta(days=1))), [])
        self.assertEqual(dashboards.technician_activity(self.tech, today).count(), 2)


class TaskAPITests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin(name='Dana Admin')
        self.tech = TestDataFactory.create_technician(name='Tom Tech')
        self.other_tech = TestDataFactory.create_technician(name='Olga Other')
        self.project = TestDataFactory.create_project()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_admin_creates_task(self):
        data = {
            'project': self.project.id,
            'task_type': Task.TYPE_COMPRESSIVE_STRENGTH,
            'assigned_technician': self.tech.id,
            'scheduled_start_date': '2030-05-01',
            'scheduled_end_date': '2030-05-03',
            'date_range': True,
            'due_date': '2030-05-10',
        }
        response = self.client.post('/api/v1/tasks/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], Task.STATUS_ASSIGNED)
        self.assertEqual(response.data['scheduled_end_date'], '2030-05-03')
        self.assertEqual(response.data['assigned_technician_name'], 'Tom Tech')
        self.assertEqual(response.data['allowed_transitions'], [Task.STATUS_IN_PROGRESS_TECH])

    def test_create_with_bad_range(self):
        data = {
            'task_type': Task.TYPE_PROCTOR,
            'scheduled_start_date': '2030-05-03',
            'scheduled_end_date': '2030-05-01',
            'date_range': True,
        }
        response = self.client.post(f'/api/v1/projects/{self.project.id}/tasks/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_date_range')

    def test_technician_cannot_create_task(self):
        self.client.authenticate_user(self.tech)
        response = self.client.post(
            '/api/v1/tasks/', {'project': self.project.id, 'task_type': Task.TYPE_REBAR}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_technician_lists_only_own_tasks(self):
        mine = TestDataFactory.create_task(project=self.project, technician=self.tech)
        TestDataFactory.create_task(project=self.project, technician=self.other_tech)
        self.client.authenticate_user(self.tech)
        response = self.client.get('/api/v1/tasks/')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['id'], mine.id)

    def test_list_filters_by_status(self):
        TestDataFactory.create_task(project=self.project, technician=self.tech)
        review = TestDataFactory.create_task(project=self.project, technician=self.tech, status=Task.STATUS_READY_FOR_REVIEW)
        response = self.client.get('/api/v1/tasks/', {'status': Task.STATUS_READY_FOR_REVIEW})
        self.assertEqual([row['id'] for row in response.data['results']], [review.id])

    def test_workflow_over_http(self):
        task = TestDataFactory.create_task(project=self.project, technician=self.tech)
        tech_client = AuthenticatedAPIClient().authenticate_user(self.tech)

        response = tech_client.post(f'/api/v1/tasks/{task.id}/start/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Task.STATUS_IN_PROGRESS_TECH)

        response = tech_client.post(f'/api/v1/tasks/{task.id}/submit/')
        self.assertEqual(response.data['status'], Task.STATUS_READY_FOR_REVIEW)

        response = self.client.post(
            f'/api/v1/tasks/{task.id}/reject/',
            {'rejection_remarks': 'Add photos', 'resubmission_due_date': in_days(4).strftime('%m/%d/%Y')},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Task.STATUS_REJECTED_NEEDS_FIX)
        self.assertEqual(response.data['resubmission_due_date'], in_days(4).isoformat())

        tech_client.post(f'/api/v1/tasks/{task.id}/submit/')
        response = self.client.post(f'/api/v1/tasks/{task.id}/approve/')
        self.assertEqual(response.data['status'], Task.STATUS_APPROVED)

        response = self.client.get(f'/api/v1/tasks/{task.id}/history/')
        self.assertEqual(len(response.data), 5)
        self.assertEqual(response.data[0]['action_type'], TaskHistory.ACTION_APPROVED)

    def test_invalid_transition_response(self):
        task = TestDataFactory.create_task(project=self.project, technician=self.tech)
        response = self.client.post(f'/api/v1/tasks/{task.id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'invalid_transition')
        self.assertEqual(response.data['current_status'], Task.STATUS_ASSIGNED)
        self.assertEqual(response.data['attempted_status'], Task.STATUS_APPROVED)

    def test_reject_with_blank_remarks(self):
        task = TestDataFactory.create_task(project=self.project, technician=self.tech, status=Task.STATUS_READY_FOR_REVIEW)
        response = self.client.post(
            f'/api/v1/tasks/{task.id}/reject/',
            {'rejection_remarks': '  ', 'resubmission_due_date': in_days(2).isoformat()},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('rejection_remarks', response.data)

    def test_technician_cannot_review(self):
        task = TestDataFactory.create_task(project=self.project, technician=self.tech, status=Task.STATUS_READY_FOR_REVIEW)
        self.client.authenticate_user(self.tech)
        response = self.client.post(f'/api/v1/tasks/{task.id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_assign_endpoint_confirmation(self):
        task = TestDataFactory.create_task(project=self.project, technician=self.tech, status=Task.STATUS_READY_FOR_REVIEW)
        url = f'/api/v1/tasks/{task.id}/assign/'
        response = self.client.post(url, {'technician_id': self.other_tech.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'reassignment_not_confirmed')

        response = self.client.post(url, {'technician_id': self.other_tech.id, 'confirm_if_in_flight': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['assigned_technician'], self.other_tech.id)
        self.assertEqual(response.data['status'], Task.STATUS_READY_FOR_REVIEW)

    def test_patch_cannot_change_project(self):
        task = TestDataFactory.create_task(project=self.project, technician=self.tech)
        other_project = TestDataFactory.create_project()
        response = self.client.patch(f'/api/v1/tasks/{task.id}/', {'project': other_project.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        task.refresh_from_db()
        self.assertEqual(task.project, self.project)

    def test_dashboards_are_role_specific(self):
        response = self.client.get('/api/v1/tasks/dashboard/today/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.get('/api/v1/tasks/dashboard/technician/today/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.tech)
        response = self.client.get('/api/v1/tasks/dashboard/overdue/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.get('/api/v1/tasks/dashboard/technician/open-reports/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_activity_date_parameter(self):
        response = self.client.get('/api/v1/tasks/dashboard/activity/', {'date': 'not-a-date'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/tasks/dashboard/activity/', {'date': '2030-01-01'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, [])
