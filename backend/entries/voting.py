import logging

from django.conf import settings
from django.db import DEFAULT_DB_ALIAS, IntegrityError, transaction

from . import counters, ledger

logger = logging.getLogger(__name__)


def cast_vote(user_id, entry_id, action, using=DEFAULT_DB_ALIAS, attempts=None):
    """
    Toggle ``action`` for the user on the entry and update its counters.

    Ledger write and counter update share one transaction. Two first votes
    racing on the same (user, entry) pair surface as an IntegrityError on
    the unique constraint; the loser is retried against the committed row.
    SQLite has no row locks, so it is configured to take the write lock
    when the transaction begins (see ``transaction_mode`` in settings).

    Returns ``(entry, outcome)``.
    """
    ledger.validate_action(action)
    attempts = attempts or settings.VOTE_MAX_ATTEMPTS

    for attempt in range(1, attempts + 1):
        try:
            with transaction.atomic(using=using):
                outcome = ledger.apply_vote(user_id, entry_id, action, using=using)
                entry = counters.commit(entry_id, outcome.like_delta, outcome.dislike_delta, using=using)
            return entry, outcome
        except IntegrityError:
            if attempt == attempts:
                raise
            logger.warning(
                'Vote conflict for user %s on entry %s, retrying (%d/%d)',
                user_id, entry_id, attempt, attempts,
            )
