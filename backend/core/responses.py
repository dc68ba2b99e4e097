from rest_framework import status as http_status
from rest_framework.response import Response


def success(data=None, message=None, status=http_status.HTTP_200_OK, **extra):
    """Wrap a payload in the ``{"success": true, "data": ...}`` envelope."""
    body = {'success': True}
    if data is not None:
        body['data'] = data
    if message:
        body['message'] = message
    body.update(extra)
    return Response(body, status=status)


def paginated(page, serializer_class, context=None):
    serializer = serializer_class(page.items, many=True, context=context or {})
    return success(serializer.data, pagination=page.pagination)
