"""
Reaction ledger: at most one like/dislike per (user, entry).

Each pair is in one of three states (no reaction, liked, disliked) and
a vote for ``like`` or ``dislike`` moves it as follows:

    current   | like               | dislike
    ----------+--------------------+---------------------
    none      | liked   (+1 like)  | disliked (+1 dislike)
    liked     | none    (-1 like)  | disliked (+1 dislike, -1 like)
    disliked  | liked (+1 like, -1 dislike) | none (-1 dislike)

The counter deltas are returned to the caller, who must apply them
(see ``entries.counters``) inside the same transaction.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from django.db import DEFAULT_DB_ALIAS

from core.errors import NotFoundError, ValidationFailed

from .models import Action, Entry, Interaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoteOutcome:
    like_delta: int
    dislike_delta: int
    resulting_action: Optional[str]

    @property
    def removed(self):
        return self.resulting_action is None


def _delta(action, amount):
    if action == Action.LIKE:
        return amount, 0
    return 0, amount


def validate_action(desired):
    if desired not in Action.values:
        raise ValidationFailed(details={'action': [f'"{desired}" is not a valid choice.']})


def transition(current: Optional[str], desired: str) -> VoteOutcome:
    """Pure state transition for one (user, entry) pair."""
    validate_action(desired)

    if current is None:
        like_delta, dislike_delta = _delta(desired, 1)
        return VoteOutcome(like_delta, dislike_delta, desired)

    if current == desired:
        like_delta, dislike_delta = _delta(desired, -1)
        return VoteOutcome(like_delta, dislike_delta, None)

    add_like, add_dislike = _delta(desired, 1)
    drop_like, drop_dislike = _delta(current, -1)
    return VoteOutcome(add_like + drop_like, add_dislike + drop_dislike, desired)


def current_action(user_id, entry_id, using=DEFAULT_DB_ALIAS) -> Optional[str]:
    return (
        Interaction.objects.using(using)
        .filter(user_id=user_id, entry_id=entry_id)
        .values_list('action', flat=True)
        .first()
    )


def apply_vote(user_id, entry_id, desired, using=DEFAULT_DB_ALIAS) -> VoteOutcome:
    """
    Record ``desired`` for (user_id, entry_id) and return the counter deltas.

    Must run inside ``transaction.atomic(using=using)``: the entry row is
    locked first so concurrent votes on one entry serialize.
    """
    validate_action(desired)
    locked = Entry.objects.using(using).select_for_update().filter(pk=entry_id).only('id').first()
    if locked is None:
        raise NotFoundError('Entry not found')

    row = (
        Interaction.objects.using(using)
        .select_for_update()
        .filter(user_id=user_id, entry_id=entry_id)
        .first()
    )
    previous = row.action if row else None
    outcome = transition(previous, desired)

    if row is None:
        Interaction.objects.using(using).create(user_id=user_id, entry_id=entry_id, action=desired)
    elif outcome.removed:
        row.delete()
    else:
        row.action = desired
        row.save(update_fields=['action', 'updated_at'])

    logger.debug(
        'user %s entry %s: %s -> %s',
        user_id, entry_id, previous, outcome.resulting_action,
    )
    return outcome
