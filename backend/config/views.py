from django.http import JsonResponse
from django.utils import timezone
from rest_framework.decorators import api_view
from rest_framework.response import Response

from core.errors import error_body


@api_view(['GET'])
def health(request):
    return Response({
        'status': 'OK',
        'message': 'Favorite Movies & TV Shows API is running',
        'timestamp': timezone.now().isoformat(),
    })


def route_not_found(request, exception=None):
    body = error_body('Route not found', details=f'Cannot {request.method} {request.path}')
    return JsonResponse(body, status=404)


def server_error(request):
    return JsonResponse(error_body('Internal server error'), status=500)
