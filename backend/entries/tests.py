import random
import threading
from unittest.mock import patch

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import IntegrityError, connection
from django.urls import reverse

from core.errors import AccessDenied, CounterInvariantError, NotFoundError, ValidationFailed
from entries import ledger
from entries.access import Operation, authorize, get_entry_for
from entries.counters import recount
from entries.ledger import VoteOutcome, transition
from entries.models import Action, Entry, Interaction
from entries.queries import ListingQuery, Page, Scope, list_entries
from entries.voting import cast_vote


def _counts(entry):
    entry.refresh_from_db()
    return entry.likes, entry.dislikes


# --- Reaction ledger -------------------------------------------------------

@pytest.mark.parametrize('current, desired, expected', [
    (None, 'like', VoteOutcome(1, 0, 'like')),
    (None, 'dislike', VoteOutcome(0, 1, 'dislike')),
    ('like', 'like', VoteOutcome(-1, 0, None)),
    ('like', 'dislike', VoteOutcome(-1, 1, 'dislike')),
    ('dislike', 'like', VoteOutcome(1, -1, 'like')),
    ('dislike', 'dislike', VoteOutcome(0, -1, None)),
])
def test_transition_table(current, desired, expected):
    assert transition(current, desired) == expected


def test_transition_rejects_unknown_action():
    with pytest.raises(ValidationFailed):
        transition(None, 'love')


@pytest.mark.django_db
class TestVoting:

    def test_first_like_creates_ledger_row(self, user, other_user, make_entry):
        entry = make_entry(user)
        _, outcome = cast_vote(other_user.pk, entry.pk, Action.LIKE)

        assert outcome.resulting_action == 'like'
        assert _counts(entry) == (1, 0)
        assert Interaction.objects.get(user=other_user, entry=entry).action == 'like'

    def test_repeat_like_removes_vote(self, user, other_user, make_entry):
        entry = make_entry(user)
        cast_vote(other_user.pk, entry.pk, Action.LIKE)
        _, outcome = cast_vote(other_user.pk, entry.pk, Action.LIKE)

        assert outcome.removed
        assert _counts(entry) == (0, 0)
        assert not Interaction.objects.filter(entry=entry).exists()

    def test_like_then_dislike_flips(self, user, other_user, make_entry):
        entry = make_entry(user)
        cast_vote(other_user.pk, entry.pk, Action.LIKE)
        _, outcome = cast_vote(other_user.pk, entry.pk, Action.DISLIKE)

        assert outcome == VoteOutcome(-1, 1, 'dislike')
        assert _counts(entry) == (0, 1)
        assert Interaction.objects.filter(entry=entry).count() == 1

    def test_owner_may_vote_on_own_entry(self, user, make_entry):
        entry = make_entry(user)
        cast_vote(user.pk, entry.pk, Action.DISLIKE)
        assert _counts(entry) == (0, 1)

    def test_two_users_both_counted(self, user, other_user, make_user, make_entry):
        entry = make_entry(user)
        third = make_user()
        cast_vote(other_user.pk, entry.pk, Action.LIKE)
        cast_vote(third.pk, entry.pk, Action.LIKE)
        assert _counts(entry) == (2, 0)

    def test_missing_entry(self, user):
        with pytest.raises(NotFoundError):
            cast_vote(user.pk, 999999, Action.LIKE)
        assert not Interaction.objects.exists()

    def test_invalid_action_checked_before_store(self, user, make_entry):
        entry = make_entry(user)
        with patch('entries.voting.ledger.apply_vote') as apply_vote:
            with pytest.raises(ValidationFailed):
                cast_vote(user.pk, entry.pk, 'meh')
        apply_vote.assert_not_called()

    def test_random_sequences_keep_counters_in_sync(self, user, make_user, make_entry):
        entry = make_entry(user)
        voters = [make_user() for _ in range(4)]
        rng = random.Random(7)

        for _ in range(60):
            voter = rng.choice(voters)
            cast_vote(voter.pk, entry.pk, rng.choice([Action.LIKE, Action.DISLIKE]))
            likes, dislikes = _counts(entry)
            assert (likes, dislikes) == recount(entry)
            assert likes >= 0 and dislikes >= 0

    def test_corrupted_counter_aborts_and_rolls_back(self, user, other_user, make_entry):
        entry = make_entry(user)
        cast_vote(other_user.pk, entry.pk, Action.LIKE)
        Entry.objects.filter(pk=entry.pk).update(likes=0)

        with pytest.raises(CounterInvariantError):
            cast_vote(other_user.pk, entry.pk, Action.LIKE)

        # ledger delete was rolled back with the failed counter update
        assert Interaction.objects.filter(user=other_user, entry=entry, action='like').exists()
        assert _counts(entry) == (0, 0)

    def test_conflict_is_retried(self, user, other_user, make_entry):
        entry = make_entry(user)
        real_apply = ledger.apply_vote
        calls = []

        def flaky(*args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                raise IntegrityError('UNIQUE constraint failed')
            return real_apply(*args, **kwargs)

        with patch('entries.voting.ledger.apply_vote', side_effect=flaky):
            _, outcome = cast_vote(other_user.pk, entry.pk, Action.LIKE)

        assert len(calls) == 2
        assert outcome.resulting_action == 'like'
        assert _counts(entry) == (1, 0)

    def test_conflict_gives_up_after_max_attempts(self, user, other_user, make_entry):
        entry = make_entry(user)
        with patch('entries.voting.ledger.apply_vote', side_effect=IntegrityError('conflict')) as apply_vote:
            with pytest.raises(IntegrityError):
                cast_vote(other_user.pk, entry.pk, Action.LIKE, attempts=2)
        assert apply_vote.call_count == 2
        assert _counts(entry) == (0, 0)

    @pytest.mark.django_db(transaction=True)
    def test_parallel_likes_from_distinct_users(self, user, make_user, make_entry):
        entry = make_entry(user)
        voters = [make_user() for _ in range(6)]

        errors = _vote_in_parallel([(v.pk, entry.pk, Action.LIKE) for v in voters])

        assert errors == []
        assert _counts(entry) == (6, 0)
        assert recount(entry) == (6, 0)

    @pytest.mark.django_db(transaction=True)
    def test_parallel_double_click_stays_consistent(self, user, other_user, make_entry):
        entry = make_entry(user)

        errors = _vote_in_parallel([(other_user.pk, entry.pk, Action.LIKE)] * 2)

        assert errors == []
        # like then un-like, in whichever order the two requests commit
        assert _counts(entry) == recount(entry) == (0, 0)
        assert not Interaction.objects.filter(entry=entry).exists()


def _vote_in_parallel(votes):
    """Run each (user_id, entry_id, action) vote on its own thread at once."""
    barrier = threading.Barrier(len(votes))
    errors = []

    def run(user_id, entry_id, action):
        try:
            barrier.wait(timeout=10)
            cast_vote(user_id, entry_id, action)
        except Exception as exc:
            errors.append(exc)
        finally:
            connection.close()

    threads = [threading.Thread(target=run, args=vote) for vote in votes]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return errors


# --- Query engine ----------------------------------------------------------

def test_page_metadata():
    page = Page(items=[], page=2, limit=10, total=25)
    assert page.pagination == {
        'page': 2, 'limit': 10, 'total': 25,
        'totalPages': 3, 'hasNext': True, 'hasPrev': True,
    }
    assert Page(items=[], page=1, limit=10, total=0).pagination['totalPages'] == 0


@pytest.mark.django_db
class TestListEntries:

    def test_second_page_of_25(self, user, make_entry):
        for i in range(25):
            make_entry(user, title=f"Movie {i}")

        page = list_entries(ListingQuery(scope=Scope.MINE, user_id=user.pk, page=2, limit=10))

        assert len(page.items) == 10
        assert page.pagination['totalPages'] == 3
        assert page.pagination['hasNext'] and page.pagination['hasPrev']

    def test_default_limit_follows_page_size_setting(self, user, make_entry, settings):
        settings.ENTRIES_PAGE_SIZE = 4
        for i in range(6):
            make_entry(user, title=f"Movie {i}")

        page = list_entries(ListingQuery(scope=Scope.MINE, user_id=user.pk))

        assert page.limit == 4
        assert len(page.items) == 4
        assert page.pagination['totalPages'] == 2

    def test_pages_do_not_overlap(self, user, make_entry):
        for i in range(7):
            make_entry(user, title=f"Movie {i}")
        seen = []
        for n in (1, 2, 3):
            page = list_entries(ListingQuery(scope=Scope.MINE, user_id=user.pk, page=n, limit=3))
            seen.extend(e.pk for e in page.items)
        assert len(seen) == len(set(seen)) == 7

    def test_mine_scope_only_returns_callers_entries(self, user, other_user, make_entry):
        make_entry(user, title='Mine')
        make_entry(other_user, title='Theirs', is_released=True)

        page = list_entries(ListingQuery(scope=Scope.MINE, user_id=user.pk))
        assert [e.title for e in page.items] == ['Mine']

    def test_community_excludes_unreleased(self, user, other_user, make_entry):
        make_entry(user, title='Public', is_released=True)
        make_entry(other_user, title='Private')

        page = list_entries(ListingQuery(scope=Scope.COMMUNITY))
        assert [e.title for e in page.items] == ['Public']
        assert all(e.is_released for e in page.items)

    def test_community_defaults_to_most_liked(self, user, make_entry):
        make_entry(user, title='Meh', is_released=True, likes=1)
        make_entry(user, title='Hit', is_released=True, likes=9)
        make_entry(user, title='Okay', is_released=True, likes=4)

        page = list_entries(ListingQuery(scope=Scope.COMMUNITY))
        assert [e.title for e in page.items] == ['Hit', 'Okay', 'Meh']

    def test_search_matches_location_case_insensitively(self, user, make_entry):
        make_entry(user, title='Amelie', director='Jeunet', location='France')
        make_entry(user, title='Heat', director='Mann', location='United States')

        page = list_entries(ListingQuery(scope=Scope.MINE, user_id=user.pk, search='fRaNcE'))
        assert [e.title for e in page.items] == ['Amelie']

    def test_query_matches_title_or_director(self, user, make_entry):
        make_entry(user, title='Inception', director='Christopher Nolan')
        make_entry(user, title='Making of Inception', director='Someone')
        make_entry(user, title='Tenet', director='Christopher Nolan')
        make_entry(user, title='Inceptionland', director='X', location='inception')

        page = list_entries(ListingQuery(scope=Scope.ALL, query='inception'))
        titles = {e.title for e in page.items}
        assert titles == {'Inception', 'Making of Inception', 'Inceptionland'}

    def test_search_scope_includes_unreleased(self, user, make_entry):
        make_entry(user, title='Hidden', is_released=False)
        page = list_entries(ListingQuery(scope=Scope.ALL, query='hidden'))
        assert page.total == 1

    def test_type_year_and_director_filters(self, user, make_entry):
        make_entry(user, title='Breaking Bad', type='TV', director='Vince Gilligan', year_time='2008-2013')
        make_entry(user, title='The Dark Knight', type='Movie', director='Christopher Nolan', year_time='2008')
        make_entry(user, title='Inception', type='Movie', director='Christopher Nolan', year_time='2010')

        assert list_entries(ListingQuery(scope=Scope.ALL, type='TV')).total == 1
        assert list_entries(ListingQuery(scope=Scope.ALL, year='2008')).total == 2
        both = list_entries(ListingQuery(scope=Scope.ALL, year='2008', director='nolan'))
        assert [e.title for e in both.items] == ['The Dark Knight']

    def test_sort_by_title_ascending(self, user, make_entry):
        for title in ('Casablanca', 'Alien', 'Brazil'):
            make_entry(user, title=title)
        page = list_entries(ListingQuery(scope=Scope.MINE, user_id=user.pk, sort_by='title', sort_order='asc'))
        assert [e.title for e in page.items] == ['Alien', 'Brazil', 'Casablanca']

    def test_unknown_sort_field_rejected(self, user):
        with pytest.raises(ValidationFailed):
            list_entries(ListingQuery(scope=Scope.MINE, user_id=user.pk, sort_by='budget'))


# --- Access gate -----------------------------------------------------------

@pytest.mark.django_db
class TestAccessGate:

    @pytest.mark.parametrize('operation', [Operation.EDIT, Operation.DELETE, Operation.RELEASE])
    def test_owner_only_operations(self, user, other_user, make_entry, operation):
        entry = make_entry(user)
        assert authorize(user, entry, operation)
        assert not authorize(other_user, entry, operation)

    def test_any_authenticated_user_may_vote(self, user, other_user, make_entry):
        entry = make_entry(user)
        assert authorize(user, entry, Operation.VOTE)
        assert authorize(other_user, entry, Operation.VOTE)

    def test_read_needs_release_or_ownership(self, user, other_user, make_entry):
        entry = make_entry(user)
        assert authorize(user, entry, Operation.READ)
        assert not authorize(other_user, entry, Operation.READ)
        entry.is_released = True
        assert authorize(other_user, entry, Operation.READ)

    def test_missing_and_foreign_entries_look_the_same(self, user, other_user, make_entry):
        entry = make_entry(user)
        with pytest.raises(AccessDenied) as foreign:
            get_entry_for(other_user, entry.pk, Operation.EDIT)
        with pytest.raises(AccessDenied) as missing:
            get_entry_for(other_user, 999999, Operation.EDIT)
        assert foreign.value.status_code == missing.value.status_code == 404
        assert foreign.value.message == missing.value.message


# --- HTTP API --------------------------------------------------------------

ENTRY_PAYLOAD = {
    'title': 'Inception',
    'type': 'Movie',
    'director': 'Christopher Nolan',
    'budget': '$160,000,000',
    'location': 'United States',
    'duration': '148 minutes',
    'yearTime': '2010',
}


@pytest.mark.django_db
class TestEntryAPIs:

    def test_create_entry(self, user, auth_client):
        api = auth_client(user)
        response = api.post(reverse('create_entry'), ENTRY_PAYLOAD, format='json')

        assert response.status_code == 201
        body = response.json()
        assert body['success'] is True
        assert body['data']['yearTime'] == '2010'
        assert body['data']['isReleased'] is False
        assert body['data']['user'] == {'id': user.pk, 'name': 'Owner'}
        assert body['data']['likes'] == 0

    def test_create_ignores_counters_and_release_flag(self, user, auth_client):
        api = auth_client(user)
        payload = dict(ENTRY_PAYLOAD, likes=500, isReleased=True)
        response = api.post(reverse('create_entry'), payload, format='json')

        entry = Entry.objects.get(pk=response.json()['data']['id'])
        assert entry.likes == 0
        assert entry.is_released is False

    def test_create_validation_error(self, user, auth_client):
        api = auth_client(user)
        payload = dict(ENTRY_PAYLOAD, type='Podcast', title='')
        response = api.post(reverse('create_entry'), payload, format='json')

        assert response.status_code == 400
        body = response.json()
        assert body['success'] is False
        assert body['error'] == 'Validation error'
        assert set(body['details']) == {'type', 'title'}

    def test_create_requires_auth(self, client):
        response = client.post(reverse('create_entry'), ENTRY_PAYLOAD, format='json')
        assert response.status_code == 401
        assert response.json()['success'] is False

    def test_my_entries(self, user, other_user, auth_client, make_entry):
        for i in range(3):
            make_entry(user, title=f"Mine {i}")
        make_entry(other_user, title='Not mine')

        response = auth_client(user).get(reverse('my_entries'), {'limit': 2})
        body = response.json()

        assert response.status_code == 200
        assert len(body['data']) == 2
        assert body['pagination'] == {
            'page': 1, 'limit': 2, 'total': 3, 'totalPages': 2, 'hasNext': True, 'hasPrev': False,
        }

    def test_my_entries_requires_auth(self, client):
        assert client.get(reverse('my_entries')).status_code == 401

    def test_community_is_public_and_released_only(self, client, user, make_entry):
        make_entry(user, title='Released', is_released=True)
        make_entry(user, title='Draft')

        response = client.get(reverse('community_entries'), {'type': 'all'})
        titles = [e['title'] for e in response.json()['data']]
        assert response.status_code == 200
        assert titles == ['Released']

    @pytest.mark.parametrize('params', [
        {'sortBy': 'budget'},
        {'sortOrder': 'sideways'},
        {'limit': 101},
        {'limit': 0},
        {'page': 0},
        {'type': 'Podcast'},
    ])
    def test_invalid_listing_params(self, client, params):
        response = client.get(reverse('community_entries'), params)
        assert response.status_code == 400
        assert response.json()['error'] == 'Validation error'

    def test_search(self, client, user, make_entry):
        make_entry(user, title='Inception')
        make_entry(user, title='Interstellar')

        response = client.get(reverse('search_entries'), {'query': 'INCEPTION'})
        body = response.json()

        assert response.status_code == 200
        assert [e['title'] for e in body['data']] == ['Inception']
        assert body['pagination']['total'] == 1

    def test_get_entry_visibility(self, client, user, other_user, auth_client, make_entry):
        draft = make_entry(user, title='Draft')
        released = make_entry(user, title='Out', is_released=True)

        assert client.get(reverse('entry_detail', args=[released.pk])).status_code == 200
        assert client.get(reverse('entry_detail', args=[draft.pk])).status_code == 404
        assert auth_client(user).get(reverse('entry_detail', args=[draft.pk])).status_code == 200

    def test_update_by_owner(self, user, auth_client, make_entry):
        entry = make_entry(user)
        response = auth_client(user).put(
            reverse('entry_detail', args=[entry.pk]), {'title': 'Tenet', 'isReleased': True}, format='json',
        )

        assert response.status_code == 200
        assert response.json()['message'] == 'Entry updated successfully'
        entry.refresh_from_db()
        assert entry.title == 'Tenet'
        assert entry.is_released is True
        assert entry.director == 'Christopher Nolan'

    def test_update_by_stranger_is_not_found(self, user, other_user, auth_client, make_entry):
        entry = make_entry(user)
        response = auth_client(other_user).put(
            reverse('entry_detail', args=[entry.pk]), {'title': 'Hijacked'}, format='json',
        )

        assert response.status_code == 404
        assert response.json() == {'success': False, 'error': 'Entry not found or access denied'}
        entry.refresh_from_db()
        assert entry.title == 'Inception'

    def test_delete(self, user, other_user, auth_client, make_entry):
        entry = make_entry(user)
        url = reverse('entry_detail', args=[entry.pk])

        assert auth_client(other_user).delete(url).status_code == 404
        response = auth_client(user).delete(url)
        assert response.status_code == 200
        assert response.json() == {'success': True, 'message': 'Entry deleted successfully'}
        assert not Entry.objects.filter(pk=entry.pk).exists()

    def test_release(self, client, user, other_user, auth_client, make_entry):
        entry = make_entry(user)
        url = reverse('release_entry', args=[entry.pk])

        assert auth_client(other_user).post(url).status_code == 404
        response = auth_client(user).post(url)
        assert response.status_code == 200
        assert response.json()['data']['isReleased'] is True
        titles = [e['title'] for e in client.get(reverse('community_entries')).json()['data']]
        assert titles == ['Inception']

    def test_like_toggle_messages(self, user, other_user, auth_client, make_entry):
        entry = make_entry(user, is_released=True)
        api = auth_client(other_user)
        url = reverse('like_entry', args=[entry.pk])

        first = api.post(url).json()
        assert first['message'] == 'Entry liked successfully'
        assert first['data']['likes'] == 1
        assert first['data']['userAction'] == 'like'

        second = api.post(url).json()
        assert second['message'] == 'Like removed'
        assert second['data']['likes'] == 0
        assert second['data']['userAction'] is None

    def test_dislike_after_like(self, user, other_user, auth_client, make_entry):
        entry = make_entry(user, is_released=True)
        api = auth_client(other_user)
        api.post(reverse('like_entry', args=[entry.pk]))
        body = api.post(reverse('dislike_entry', args=[entry.pk])).json()

        assert body['message'] == 'Entry disliked successfully'
        assert (body['data']['likes'], body['data']['dislikes']) == (0, 1)

    def test_two_users_like(self, user, other_user, make_user, auth_client, make_entry):
        entry = make_entry(user, is_released=True)
        url = reverse('like_entry', args=[entry.pk])

        assert auth_client(other_user).post(url).status_code == 200
        assert auth_client(make_user()).post(url).status_code == 200
        entry.refresh_from_db()
        assert entry.likes == 2

    def test_vote_requires_auth(self, client, user, make_entry):
        entry = make_entry(user)
        response = client.post(reverse('like_entry', args=[entry.pk]))
        assert response.status_code == 401
        assert _counts(entry) == (0, 0)

    def test_vote_on_missing_entry(self, user, auth_client):
        response = auth_client(user).post(reverse('dislike_entry', args=[424242]))
        assert response.status_code == 404
        assert response.json() == {'success': False, 'error': 'Entry not found'}

    def test_interaction(self, user, other_user, auth_client, make_entry):
        entry = make_entry(user, is_released=True)
        api = auth_client(other_user)
        url = reverse('entry_interaction', args=[entry.pk])

        assert api.get(url).json()['data'] == {'action': None}
        api.post(reverse('dislike_entry', args=[entry.pk]))
        assert api.get(url).json()['data'] == {'action': 'dislike'}

    def test_counter_corruption_is_internal_error(self, user, other_user, auth_client, make_entry):
        entry = make_entry(user)
        Interaction.objects.create(user=other_user, entry=entry, action='like')
        response = auth_client(other_user).post(reverse('like_entry', args=[entry.pk]))

        assert response.status_code == 500
        assert response.json()['success'] is False

    def test_unknown_route(self, client):
        response = client.get('/nothing-here')
        assert response.status_code == 404
        assert response.json()['error'] == 'Route not found'

    def test_health(self, client):
        response = client.get(reverse('health'))
        assert response.status_code == 200
        assert response.json()['status'] == 'OK'


# --- Management commands ---------------------------------------------------

@pytest.mark.django_db
class TestCommands:

    def test_seed_entries_is_consistent_and_idempotent(self):
        call_command('seed_entries')
        call_command('seed_entries')

        assert Entry.objects.count() == 8
        for entry in Entry.objects.all():
            assert (entry.likes, entry.dislikes) == recount(entry)
        assert Entry.objects.filter(is_released=False).count() == 1

    def test_reconcile_reports_and_fixes_drift(self, user, other_user, make_entry):
        entry = make_entry(user)
        cast_vote(other_user.pk, entry.pk, Action.LIKE)
        Entry.objects.filter(pk=entry.pk).update(likes=5)

        with pytest.raises(CommandError):
            call_command('reconcile_counters')
        call_command('reconcile_counters', '--fix')
        assert _counts(entry) == (1, 0)
        call_command('reconcile_counters')
