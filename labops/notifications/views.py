import logging
from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from labops.core.utils import paginated_response
from .models import Notification
from .serializers import NotificationSerializer

logger = logging.getLogger('labops.notifications')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notification_list(request):
    """The caller's notifications, newest first. ?unread=true limits to unread ones."""
    queryset = Notification.objects.filter(user=request.user).select_related('related_project')
    if request.query_params.get('unread', '').lower() in ('1', 'true', 'yes'):
        queryset = queryset.filter(is_read=False)
    return paginated_response(request, queryset, NotificationSerializer, default_limit=50)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notification_unread_count(request):
    count = Notification.objects.filter(user=request.user, is_read=False).count()
    return Response({'count': count})


@api_view(['PUT', 'POST'])
@permission_classes([IsAuthenticated])
def notification_mark_read(request, pk):
    notification = get_object_or_404(Notification, pk=pk, user=request.user)
    if not notification.is_read:
        notification.is_read = True
        notification.save(update_fields=['is_read'])
    return Response(NotificationSerializer(notification).data)


@api_view(['PUT', 'POST'])
@permission_classes([IsAuthenticated])
def notification_mark_all_read(request):
    updated = Notification.objects.filter(user=request.user, is_read=False).update(is_read=True)
    logger.info(f"User {request.user.username} marked {updated} notification(s) read")
    return Response({'updated': updated})
