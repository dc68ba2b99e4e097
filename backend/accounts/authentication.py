from datetime import timedelta

from django.conf import settings
from django.utils import timezone
from rest_framework import exceptions
from rest_framework.authentication import TokenAuthentication
from rest_framework.authtoken.models import Token


def token_expired(token):
    return token.created < timezone.now() - timedelta(days=settings.AUTH_TOKEN_TTL_DAYS)


def issue_token(user):
    """Replace any existing token of ``user`` with a fresh one."""
    Token.objects.filter(user=user).delete()
    return Token.objects.create(user=user)


class BearerTokenAuthentication(TokenAuthentication):
    """``Authorization: Bearer <key>`` with a bounded token lifetime."""
    keyword = 'Bearer'

    def authenticate_credentials(self, key):
        user, token = super().authenticate_credentials(key)
        if token_expired(token):
            token.delete()
            raise exceptions.AuthenticationFailed('Token has expired.')
        return user, token
