import asyncio
import logging
import os
import tempfile
from dataclasses import dataclass
from typing import FrozenSet, Optional

from fastapi import UploadFile

from app.configs.settings import settings
from app.cores.api_error import BadRequestError, InternalError, field_error
from app.external.blob_store import BlobStore, BlobStoreError, StoredBlob

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class UploadPolicy:
    folder: str
    allowed_types: FrozenSet[str]
    allowed_extensions: FrozenSet[str]
    max_size: int


IMAGE_POLICY = UploadPolicy(
    folder="images",
    allowed_types=frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp"}),
    allowed_extensions=frozenset({".jpg", ".jpeg", ".png", ".webp"}),
    max_size=settings.MAX_IMAGE_SIZE_BYTES,
)

VIDEO_POLICY = UploadPolicy(
    folder="videos",
    allowed_types=frozenset({"video/mp4", "video/webm", "video/quicktime", "video/x-matroska"}),
    allowed_extensions=frozenset({".mp4", ".webm", ".mov", ".mkv"}),
    max_size=settings.MAX_VIDEO_SIZE_BYTES,
)


# -------- Validaciones --------

def _validate_upload(file: UploadFile, policy: UploadPolicy, field_name: str) -> str:
    extension = os.path.splitext(file.filename or "")[1].lower()
    if extension not in policy.allowed_extensions or (file.content_type or "").lower() not in policy.allowed_types:
        allowed = ", ".join(sorted(policy.allowed_extensions))
        raise BadRequestError(
            f"Invalid file type for {field_name}",
            [field_error(field_name, f"Allowed types: {allowed}")],
        )
    return extension


async def _stage_upload(file: UploadFile, extension: str, policy: UploadPolicy, field_name: str) -> str:
    """Copia el upload a un archivo temporal local; el caller siempre lo borra."""
    os.makedirs(settings.UPLOAD_TMP_DIR, exist_ok=True)
    handle, temp_path = tempfile.mkstemp(suffix=extension, dir=settings.UPLOAD_TMP_DIR)
    written = 0
    with os.fdopen(handle, "wb") as buffer:
        while True:
            chunk = await file.read(CHUNK_SIZE)
            if not chunk:
                break
            written += len(chunk)
            if written > policy.max_size:
                buffer.close()
                _remove_temp_file(temp_path)
                raise BadRequestError(
                    f"{field_name} is too large",
                    [field_error(field_name, f"Maximum size is {policy.max_size // (1024 * 1024)} MB")],
                )
            buffer.write(chunk)
    return temp_path


def _remove_temp_file(temp_path: Optional[str]) -> None:
    if temp_path and os.path.exists(temp_path):
        try:
            os.remove(temp_path)
        except OSError as e:
            logger.warning(f"Could not remove temp file {temp_path}: {e}")


# -------- Subida --------

async def handle_file_upload(
    file: Optional[UploadFile],
    blob_store: BlobStore,
    policy: UploadPolicy,
    field_name: str,
    default_url: Optional[str] = None,
    required: bool = False,
) -> StoredBlob:
    """
    Valida, guarda en temporal y sube un archivo al blob store con timeout.

    Args:
        file: Archivo recibido (puede ser None si es opcional)
        blob_store: Almacenamiento destino
        policy: Tipos, extensiones y tamaño permitidos
        field_name: Nombre del campo, usado en los errores
        default_url: URL que se usa si el archivo es opcional y la subida falla
        required: Si es True, cualquier fallo se propaga en lugar de degradar

    Returns:
        StoredBlob con la URL final; storage_id es None cuando se usó default_url
    """
    if file is None or not file.filename:
        if required:
            raise BadRequestError(f"{field_name} is required", [field_error(field_name, "File is required")])
        return StoredBlob(url=default_url, storage_id=None)

    temp_path = None
    try:
        extension = _validate_upload(file, policy, field_name)
        temp_path = await _stage_upload(file, extension, policy, field_name)
        return await asyncio.wait_for(
            blob_store.store(temp_path, policy.folder),
            timeout=settings.UPLOAD_TIMEOUT_SECONDS,
        )
    except BadRequestError as e:
        if required:
            raise
        logger.warning(f"Rejected {field_name} upload, using default: {e.message}")
        return StoredBlob(url=default_url, storage_id=None)
    except (asyncio.TimeoutError, BlobStoreError) as e:
        if required:
            logger.error(f"{field_name} upload failed: {e!r}")
            raise InternalError(f"{field_name} upload failed")
        logger.warning(f"{field_name} upload failed, using default: {e!r}")
        return StoredBlob(url=default_url, storage_id=None)
    finally:
        _remove_temp_file(temp_path)


async def delete_stored_file(blob_store: BlobStore, storage_id: Optional[str]) -> None:
    """Borra un archivo del blob store; los fallos sólo se registran."""
    if not storage_id:
        return
    try:
        await blob_store.delete(storage_id)
    except BlobStoreError as e:
        logger.warning(f"Could not delete blob {storage_id}: {e}")
