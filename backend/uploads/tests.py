from unittest.mock import patch

import pytest
from django.core.files.storage import InMemoryStorage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse

from uploads.store import ImageStore

PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 64


@pytest.fixture
def store():
    image_store = ImageStore(InMemoryStorage(base_url='/media/'), folder='movies-app')
    with patch('uploads.views.get_image_store', return_value=image_store):
        yield image_store


def _image(name='poster.png', content=PNG_BYTES, content_type='image/png'):
    return SimpleUploadedFile(name, content, content_type=content_type)


def test_store_and_delete(store):
    stored = store.store(_image())

    assert stored.public_id.startswith('movies-app/')
    assert stored.public_id.endswith('.png')
    assert stored.url == f"/media/{stored.public_id}"
    assert store.storage.exists(stored.public_id)

    assert store.delete(stored.public_id) is True
    assert store.delete(stored.public_id) is False


def test_delete_refuses_paths_outside_folder(store):
    store.storage.save('secrets.txt', SimpleUploadedFile('secrets.txt', b'x'))
    assert store.delete('secrets.txt') is False
    assert store.delete('movies-app/../secrets.txt') is False
    assert store.storage.exists('secrets.txt')


@pytest.mark.django_db
class TestUploadAPIs:

    def test_upload_image(self, client, store):
        response = client.post(reverse('upload_image'), {'image': _image()}, format='multipart')

        assert response.status_code == 200
        data = response.json()['data']
        assert data['url'].startswith('/media/movies-app/')
        assert store.storage.exists(data['publicId'])

    def test_upload_requires_file(self, client, store):
        response = client.post(reverse('upload_image'), {}, format='multipart')
        assert response.status_code == 400
        assert response.json()['error'] == 'No image file provided'

    def test_upload_rejects_non_images(self, client, store):
        upload = _image(name='notes.txt', content=b'hello', content_type='text/plain')
        response = client.post(reverse('upload_image'), {'image': upload}, format='multipart')
        assert response.status_code == 400
        assert response.json()['error'] == 'Only image files are allowed'

    def test_upload_size_limit(self, client, store, settings):
        settings.UPLOAD_MAX_BYTES = 10
        response = client.post(reverse('upload_image'), {'image': _image()}, format='multipart')
        assert response.status_code == 400

    def test_delete_image(self, client, store):
        stored = store.store(_image())
        url = reverse('delete_image', args=[stored.public_id])

        response = client.delete(url)
        assert response.status_code == 200
        assert response.json()['message'] == 'Image deleted successfully'
        assert client.delete(url).status_code == 404
