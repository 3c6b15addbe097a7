"""Shared view helpers"""
from django.core.paginator import Paginator
from rest_framework.response import Response
from .exceptions import ValidationError


def _positive_int(value, name, default):
    if value in (None, ''):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError({name: f'{name} must be a whole number.'})
    if number < 1:
        raise ValidationError({name: f'{name} must be at least 1.'})
    return number


def paginated_response(request, queryset, serializer_class, default_limit=25, context=None):
    """Page a queryset with ?page=&limit= and return the list envelope the frontend expects"""
    page = _positive_int(request.query_params.get('page'), 'page', 1)
    limit = _positive_int(request.query_params.get('limit'), 'limit', default_limit)
    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)

    serializer = serializer_class(page_obj, many=True, context=context or {'request': request})
    return Response({
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    })
