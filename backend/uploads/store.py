"""
Image storage over any Django ``Storage`` backend.

Files are written under ``UPLOAD_FOLDER`` with a random name; the
storage-relative name doubles as the public id used for deletion.
"""
import logging
import os
import uuid
from dataclasses import dataclass

from django.conf import settings
from django.core.files.storage import storages

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredImage:
    url: str
    public_id: str


class ImageStore:
    def __init__(self, storage, folder=None):
        self.storage = storage
        self.folder = (folder if folder is not None else settings.UPLOAD_FOLDER).strip('/')

    def _name_for(self, filename):
        ext = os.path.splitext(filename or '')[1].lower()
        name = f"{uuid.uuid4().hex}{ext}"
        return f"{self.folder}/{name}" if self.folder else name

    def owns(self, public_id):
        if '..' in public_id.split('/'):
            return False
        return not self.folder or public_id.startswith(f"{self.folder}/")

    def store(self, file) -> StoredImage:
        public_id = self.storage.save(self._name_for(getattr(file, 'name', '')), file)
        logger.info('Stored image %s (%s bytes)', public_id, getattr(file, 'size', '?'))
        return StoredImage(url=self.storage.url(public_id), public_id=public_id)

    def delete(self, public_id) -> bool:
        if not self.owns(public_id) or not self.storage.exists(public_id):
            return False
        self.storage.delete(public_id)
        logger.info('Deleted image %s', public_id)
        return True


def get_image_store():
    return ImageStore(storages['default'])
