from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes

from core.responses import success

from .authentication import issue_token
from .credentials import create_account, verify_credentials
from .serializers import LoginSerializer, RegisterSerializer, UserSerializer


def _auth_payload(user):
    return {'user': UserSerializer(user).data, 'token': issue_token(user).key}


@api_view(['POST'])
@authentication_classes([])
def register(request):
    serializer = RegisterSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = create_account(**serializer.validated_data)
    return success(_auth_payload(user), message='User registered successfully', status=status.HTTP_201_CREATED)


@api_view(['POST'])
@authentication_classes([])
def login(request):
    serializer = LoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = verify_credentials(**serializer.validated_data)
    return success(_auth_payload(user), message='Login successful')
