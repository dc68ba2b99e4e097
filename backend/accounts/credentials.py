"""
Credential store backed by ``django.contrib.auth``.

Accounts are keyed by normalised e-mail (stored as the username);
the display name lives in ``first_name``.
"""
import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction

from core.errors import AuthenticationError, ValidationFailed

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = 'Invalid email or password'
DUPLICATE_EMAIL = 'User with this email already exists'


def normalize_email(email):
    return (email or '').strip().lower()


def create_account(name, email, password):
    User = get_user_model()
    email = normalize_email(email)
    if User.objects.filter(username=email).exists():
        raise ValidationFailed(DUPLICATE_EMAIL)
    try:
        with transaction.atomic():
            user = User.objects.create_user(
                username=email, email=email, password=password, first_name=name,
            )
    except IntegrityError:
        raise ValidationFailed(DUPLICATE_EMAIL)
    logger.info('Registered user %s', user.pk)
    return user


def verify_credentials(email, password):
    User = get_user_model()
    user = User.objects.filter(username=normalize_email(email)).first()
    if user is None:
        # same hashing cost as a wrong password
        User().set_password(password)
        raise AuthenticationError(INVALID_CREDENTIALS)
    if not user.is_active or not user.check_password(password):
        raise AuthenticationError(INVALID_CREDENTIALS)
    return user
