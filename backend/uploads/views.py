from django.conf import settings
from rest_framework.decorators import api_view, parser_classes
from rest_framework.parsers import FormParser, MultiPartParser

from core.errors import NotFoundError, ValidationFailed
from core.responses import success

from .store import get_image_store


def _validate_image(upload):
    if upload is None:
        raise ValidationFailed('No image file provided')
    if not (upload.content_type or '').startswith('image/'):
        raise ValidationFailed('Only image files are allowed')
    if upload.size > settings.UPLOAD_MAX_BYTES:
        raise ValidationFailed(f'Image must be at most {settings.UPLOAD_MAX_BYTES} bytes')


@api_view(['POST'])
@parser_classes([MultiPartParser, FormParser])
def upload_image(request):
    upload = request.FILES.get('image')
    _validate_image(upload)
    stored = get_image_store().store(upload)
    return success(
        {'url': stored.url, 'publicId': stored.public_id},
        message='Image uploaded successfully',
    )


@api_view(['DELETE'])
def delete_image(request, public_id):
    if not get_image_store().delete(public_id):
        raise NotFoundError('Image not found')
    return success(message='Image deleted successfully')
