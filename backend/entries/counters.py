import logging

from django.db import DEFAULT_DB_ALIAS
from django.db.models import F
from django.utils import timezone

from core.errors import CounterInvariantError, NotFoundError

from .models import Action, Entry, Interaction

logger = logging.getLogger(__name__)


def commit(entry_id, like_delta, dislike_delta, using=DEFAULT_DB_ALIAS):
    """
    Apply ledger deltas to an entry's like/dislike counters.

    Runs in the caller's transaction, right after ``ledger.apply_vote``.
    A counter that would go negative means the counters and the ledger
    have already diverged: the error aborts the transaction and is never
    clamped.
    """
    entries = Entry.objects.using(using)
    try:
        entry = entries.select_for_update().get(pk=entry_id)
    except Entry.DoesNotExist:
        raise NotFoundError('Entry not found')

    likes = entry.likes + like_delta
    dislikes = entry.dislikes + dislike_delta
    if likes < 0 or dislikes < 0:
        logger.critical(
            'Counter invariant violated on entry %s: likes %s%+d, dislikes %s%+d',
            entry_id, entry.likes, like_delta, entry.dislikes, dislike_delta,
        )
        raise CounterInvariantError()

    entries.filter(pk=entry_id).update(
        likes=F('likes') + like_delta,
        dislikes=F('dislikes') + dislike_delta,
        updated_at=timezone.now(),
    )
    entry.refresh_from_db(fields=['likes', 'dislikes', 'updated_at'])
    return entry


def recount(entry, using=DEFAULT_DB_ALIAS):
    """Return (likes, dislikes) as counted from the ledger rows."""
    rows = Interaction.objects.using(using).filter(entry=entry)
    return (
        rows.filter(action=Action.LIKE).count(),
        rows.filter(action=Action.DISLIKE).count(),
    )
