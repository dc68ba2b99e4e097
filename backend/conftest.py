import itertools

import pytest
from rest_framework.test import APIClient

from accounts.authentication import issue_token
from accounts.credentials import create_account
from entries.models import Entry

_seq = itertools.count(1)


@pytest.fixture
def client():
    return APIClient()


@pytest.fixture
def make_user(db):
    def _make(name=None, email=None, password='secret123'):
        n = next(_seq)
        return create_account(name or f"User {n}", email or f"user{n}@example.com", password)
    return _make


@pytest.fixture
def user(make_user):
    return make_user(name='Owner', email='owner@example.com')


@pytest.fixture
def other_user(make_user):
    return make_user(name='Stranger', email='stranger@example.com')


@pytest.fixture
def auth_client():
    """Returns a factory building an APIClient logged in as the given user."""
    def _client(user):
        api = APIClient()
        api.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_token(user).key}")
        return api
    return _client


@pytest.fixture
def make_entry(db):
    def _make(user, **fields):
        defaults = dict(
            title='Inception', type='Movie', director='Christopher Nolan',
            budget='$160,000,000', location='United States', duration='148 minutes',
            year_time='2010',
        )
        defaults.update(fields)
        return Entry.objects.create(user=user, **defaults)
    return _make
