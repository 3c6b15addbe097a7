import datetime
import logging
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from labops.core.exceptions import ValidationError
from labops.core.permissions import IsAdminRole, IsTechnicianRole
from labops.core.utils import paginated_response
from labops.projects.views import projects_visible_to
from . import dashboards, workflow
from .assignment import assign_task, create_task, update_task_details
from .filters import TaskFilter
from .models import Task
from .serializers import (
    TaskSerializer, TaskCreateSerializer, TaskAssignSerializer, TaskRejectSerializer,
    TaskUpdateSerializer, TaskHistorySerializer,
)
from .validators import parse_calendar_date

logger = logging.getLogger('labops.tasks')


def tasks_visible_to(user):
    """Admins see every task; technicians only their own"""
    queryset = Task.objects.select_related('project', 'assigned_technician', 'last_edited_by')
    if user.is_admin_role:
        return queryset
    return queryset.filter(assigned_technician=user)


def _forbidden():
    return Response({'error': IsAdminRole.message}, status=status.HTTP_403_FORBIDDEN)


def _create_task_from_request(request, project_id=None):
    serializer = TaskCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = dict(serializer.validated_data)
    schedule = serializer.pop_schedule(data)
    project_id = project_id if project_id is not None else data.pop('project', None)
    data.pop('project', None)
    if project_id is None:
        raise ValidationError({'project': 'This field is required.'})

    task = create_task(
        project_id=project_id,
        task_type=data['task_type'],
        technician_id=data.get('assigned_technician'),
        schedule=schedule,
        location_name=data.get('location_name', ''),
        location_notes=data.get('location_notes', ''),
        actor=request.user,
    )
    return Response(TaskSerializer(task).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def task_list_create(request):
    """List tasks visible to the caller, or create a task (admin only)"""
    if request.method == 'GET':
        filterset = TaskFilter(request.query_params, queryset=tasks_visible_to(request.user))
        return paginated_response(request, filterset.qs, TaskSerializer, default_limit=50)

    if not request.user.is_admin_role:
        return _forbidden()
    return _create_task_from_request(request)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def project_task_list_create(request, pk):
    """Tasks of one project"""
    project = get_object_or_404(projects_visible_to(request.user), pk=pk)

    if request.method == 'GET':
        queryset = tasks_visible_to(request.user).filter(project=project)
        filterset = TaskFilter(request.query_params, queryset=queryset)
        return paginated_response(request, filterset.qs, TaskSerializer, default_limit=50)

    if not request.user.is_admin_role:
        return _forbidden()
    return _create_task_from_request(request, project_id=project.pk)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def task_detail(request, pk):
    """Retrieve a task, or edit its location and engagement notes"""
    task = get_object_or_404(tasks_visible_to(request.user), pk=pk)

    if request.method == 'GET':
        return Response(TaskSerializer(task).data)

    serializer = TaskUpdateSerializer(data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    task = update_task_details(task.pk, request.user, **serializer.validated_data)
    return Response(TaskSerializer(task).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def task_assign(request, pk):
    """Assign or reassign a technician, optionally with a new schedule"""
    serializer = TaskAssignSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = dict(serializer.validated_data)
    schedule = serializer.pop_schedule(data)

    task = assign_task(
        pk,
        data['technician_id'],
        schedule=schedule or None,
        confirm_if_in_flight=data['confirm_if_in_flight'],
        actor=request.user,
    )
    return Response(TaskSerializer(task).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsTechnicianRole])
def task_start(request, pk):
    task = workflow.start_task(pk, request.user)
    return Response(TaskSerializer(task).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def task_submit(request, pk):
    """Submit (or resubmit) a task for review"""
    task = workflow.submit_task(pk, request.user)
    return Response(TaskSerializer(task).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def task_approve(request, pk):
    task = workflow.approve_task(pk, request.user)
    return Response(TaskSerializer(task).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def task_reject(request, pk):
    """Reject with remarks and a resubmission due date"""
    serializer = TaskRejectSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    task = workflow.reject_task(
        pk,
        request.user,
        serializer.validated_data.get('rejection_remarks'),
        serializer.validated_data.get('resubmission_due_date'),
    )
    return Response(TaskSerializer(task).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def task_mark_field_complete(request, pk):
    task = workflow.mark_field_complete(pk, request.user)
    return Response(TaskSerializer(task).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def task_history(request, pk):
    """History entries for a task, newest first"""
    task = get_object_or_404(tasks_visible_to(request.user), pk=pk)
    serializer = TaskHistorySerializer(task.history.all(), many=True)
    return Response(serializer.data)


def _activity_day(request):
    raw = request.query_params.get('date')
    if raw:
        return parse_calendar_date(raw, 'date')
    return timezone.localdate() - datetime.timedelta(days=1)


def _task_list(queryset):
    return Response(TaskSerializer(queryset, many=True).data)


# Admin dashboards

@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def dashboard_today(request):
    return _task_list(dashboards.today_tasks())


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def dashboard_upcoming(request):
    return _task_list(dashboards.upcoming_tasks())


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def dashboard_overdue(request):
    return _task_list(dashboards.overdue_tasks())


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def dashboard_activity(request):
    """Tasks submitted or approved on ?date= (default yesterday)"""
    return _task_list(dashboards.activity_tasks(_activity_day(request)))


# Technician dashboards

@api_view(['GET'])
@permission_classes([IsAuthenticated, IsTechnicianRole])
def technician_dashboard_today(request):
    return _task_list(dashboards.today_tasks(tasks_visible_to(request.user)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsTechnicianRole])
def technician_dashboard_tomorrow(request):
    return _task_list(dashboards.tomorrow_tasks(tasks_visible_to(request.user)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsTechnicianRole])
def technician_dashboard_upcoming(request):
    return _task_list(dashboards.upcoming_tasks(tasks_visible_to(request.user)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsTechnicianRole])
def technician_dashboard_open_reports(request):
    return _task_list(dashboards.open_report_tasks(tasks_visible_to(request.user)))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsTechnicianRole])
def technician_dashboard_activity(request):
    entries = dashboards.technician_activity(request.user, _activity_day(request))
    return Response(TaskHistorySerializer(entries, many=True).data)
