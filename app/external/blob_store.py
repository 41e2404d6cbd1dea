"""
Almacenamiento de archivos de medios (videos, miniaturas, avatares, portadas).

El resto del código sólo depende del contrato `store(path, folder) -> StoredBlob`
y `delete(storage_id)`; la implementación local copia el archivo bajo MEDIA_ROOT
y lo expone bajo MEDIA_BASE_URL.
"""

import asyncio
import logging
import os
import shutil
import uuid
from dataclasses import dataclass
from typing import Optional

from app.configs.settings import settings

logger = logging.getLogger(__name__)


class BlobStoreError(Exception):
    pass


@dataclass
class StoredBlob:
    url: str
    storage_id: Optional[str] = None


class BlobStore:
    async def store(self, file_path: str, folder: str) -> StoredBlob:
        raise NotImplementedError

    async def delete(self, storage_id: str) -> None:
        raise NotImplementedError


class LocalBlobStore(BlobStore):
    def __init__(self, root: str, base_url: str):
        self.root = root
        self.base_url = base_url.rstrip("/")

    def _copy(self, source: str, destination: str) -> None:
        os.makedirs(os.path.dirname(destination), exist_ok=True)
        shutil.copyfile(source, destination)

    async def store(self, file_path: str, folder: str) -> StoredBlob:
        extension = os.path.splitext(file_path)[1].lower()
        storage_id = f"{folder}/{uuid.uuid4().hex}{extension}"
        destination = os.path.join(self.root, storage_id)
        try:
            await asyncio.to_thread(self._copy, file_path, destination)
        except OSError as e:
            raise BlobStoreError(f"Could not store {file_path}: {e}") from e
        return StoredBlob(url=f"{self.base_url}/{storage_id}", storage_id=storage_id)

    async def delete(self, storage_id: str) -> None:
        path = os.path.join(self.root, storage_id)
        try:
            await asyncio.to_thread(os.remove, path)
        except FileNotFoundError:
            logger.warning(f"Blob {storage_id} was already gone")
        except OSError as e:
            raise BlobStoreError(f"Could not delete {storage_id}: {e}") from e


blob_store = LocalBlobStore(settings.MEDIA_ROOT, settings.MEDIA_BASE_URL)


def get_blob_store() -> BlobStore:
    return blob_store
