import enum

from django.db import DEFAULT_DB_ALIAS

from core.errors import AccessDenied, AuthenticationError

from .models import Entry


class Operation(enum.Enum):
    READ = 'read'
    EDIT = 'edit'
    DELETE = 'delete'
    RELEASE = 'release'
    VOTE = 'vote'


OWNER_ONLY = {Operation.EDIT, Operation.DELETE, Operation.RELEASE}


def authorize(user, entry, operation):
    """Return True when ``user`` may perform ``operation`` on ``entry``."""
    authenticated = user is not None and user.is_authenticated
    if operation in OWNER_ONLY:
        return authenticated and entry.user_id == user.pk
    if operation is Operation.VOTE:
        # owners may vote on their own entries
        return authenticated
    return entry.is_released or (authenticated and entry.user_id == user.pk)


def get_entry_for(user, entry_id, operation, using=DEFAULT_DB_ALIAS):
    """
    Load an entry and check ``operation`` against it.

    A missing entry and one the user may not touch raise the same
    AccessDenied error.
    """
    if operation is not Operation.READ and not (user is not None and user.is_authenticated):
        raise AuthenticationError()
    entry = Entry.objects.using(using).select_related('user').filter(pk=entry_id).first()
    if entry is None or not authorize(user, entry, operation):
        raise AccessDenied()
    return entry
