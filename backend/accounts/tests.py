from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone
from rest_framework.authtoken.models import Token

from accounts.credentials import create_account, verify_credentials
from core.errors import AuthenticationError, ValidationFailed


@pytest.mark.django_db
class TestCredentialStore:

    def test_create_and_verify(self):
        user = create_account('Jane Smith', 'Jane@Example.com', 'password123')
        assert user.email == 'jane@example.com'
        assert user.first_name == 'Jane Smith'
        assert verify_credentials('jane@example.com', 'password123') == user

    def test_duplicate_email(self):
        create_account('Jane', 'jane@example.com', 'password123')
        with pytest.raises(ValidationFailed):
            create_account('Other Jane', 'JANE@example.com', 'password456')

    @pytest.mark.parametrize('email, password', [
        ('jane@example.com', 'wrong-password'),
        ('nobody@example.com', 'password123'),
    ])
    def test_bad_credentials(self, email, password):
        create_account('Jane', 'jane@example.com', 'password123')
        with pytest.raises(AuthenticationError):
            verify_credentials(email, password)


@pytest.mark.django_db
class TestAuthAPIs:

    def test_register(self, client):
        response = client.post(reverse('register'), {
            'name': 'John Doe', 'email': 'john@example.com', 'password': 'password123',
        }, format='json')

        assert response.status_code == 201
        data = response.json()['data']
        assert data['user']['name'] == 'John Doe'
        assert data['token']

    def test_register_validation(self, client):
        response = client.post(reverse('register'), {
            'name': 'J', 'email': 'not-an-email', 'password': '123',
        }, format='json')

        assert response.status_code == 400
        details = response.json()['details']
        assert details['name'] == ['Name must be at least 2 characters']
        assert details['email'] == ['Invalid email address']
        assert details['password'] == ['Password must be at least 6 characters']

    def test_register_duplicate(self, client, user):
        response = client.post(reverse('register'), {
            'name': 'Again', 'email': 'owner@example.com', 'password': 'password123',
        }, format='json')
        assert response.status_code == 400
        assert response.json()['error'] == 'User with this email already exists'

    def test_login_and_use_token(self, client, user):
        response = client.post(reverse('login'), {
            'email': 'owner@example.com', 'password': 'secret123',
        }, format='json')
        assert response.status_code == 200
        token = response.json()['data']['token']

        client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        assert client.get(reverse('my_entries')).status_code == 200

    def test_login_wrong_password(self, client, user):
        response = client.post(reverse('login'), {
            'email': 'owner@example.com', 'password': 'nope-nope',
        }, format='json')
        assert response.status_code == 401
        assert response.json() == {'success': False, 'error': 'Invalid email or password'}

    def test_login_ignores_stale_header(self, client, user):
        client.credentials(HTTP_AUTHORIZATION='Bearer not-a-real-token')
        response = client.post(reverse('login'), {
            'email': 'owner@example.com', 'password': 'secret123',
        }, format='json')
        assert response.status_code == 200

    def test_invalid_token(self, client):
        client.credentials(HTTP_AUTHORIZATION='Bearer not-a-real-token')
        response = client.get(reverse('my_entries'))
        assert response.status_code == 401
        assert response['WWW-Authenticate'] == 'Bearer'

    def test_expired_token(self, client, user, settings):
        settings.AUTH_TOKEN_TTL_DAYS = 7
        token = Token.objects.create(user=user)
        Token.objects.filter(pk=token.pk).update(created=timezone.now() - timedelta(days=8))

        client.credentials(HTTP_AUTHORIZATION=f"Bearer {token.key}")
        response = client.get(reverse('my_entries'))

        assert response.status_code == 401
        assert not Token.objects.filter(pk=token.pk).exists()
