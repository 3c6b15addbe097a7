import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Count
from django.shortcuts import get_object_or_404
from labops.core.permissions import IsAdminRole
from labops.core.utils import paginated_response
from .filters import ProjectFilter
from .models import Project
from .serializers import ProjectSerializer, ProjectCreateSerializer

logger = logging.getLogger('labops.projects')


def projects_visible_to(user):
    """Admins see every project; technicians see projects holding a task assigned to them"""
    queryset = Project.objects.annotate(annotated_task_count=Count('tasks'))
    if user.is_admin_role:
        return queryset
    assigned = Project.objects.filter(tasks__assigned_technician=user).values('pk')
    return queryset.filter(pk__in=assigned)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def project_list_create(request):
    """List projects (paginated) or create a project (admin only)"""
    if request.method == 'GET':
        filterset = ProjectFilter(request.query_params, queryset=projects_visible_to(request.user))
        queryset = filterset.qs.order_by('-created_at', '-id')
        return paginated_response(request, queryset, ProjectSerializer)

    if not IsAdminRole().has_permission(request, None):
        return Response({'error': IsAdminRole.message}, status=status.HTTP_403_FORBIDDEN)

    serializer = ProjectCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    project = serializer.save(created_by=request.user)
    logger.info(f"User {request.user.username} created project {project.project_number}")
    return Response(ProjectSerializer(project).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def project_detail(request, pk):
    """Retrieve a project, or update its mutable fields (admin only)"""
    project = get_object_or_404(projects_visible_to(request.user), pk=pk)

    if request.method == 'GET':
        return Response(ProjectSerializer(project).data)

    if not IsAdminRole().has_permission(request, None):
        return Response({'error': IsAdminRole.message}, status=status.HTTP_403_FORBIDDEN)

    if 'project_number' in request.data and request.data['project_number'] != project.project_number:
        return Response(
            {'error': 'Project number cannot be changed once assigned.', 'code': 'invalid'},
            status=status.HTTP_400_BAD_REQUEST
        )

    serializer = ProjectSerializer(project, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
