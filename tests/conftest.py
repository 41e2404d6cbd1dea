import asyncio
import os
import tempfile
import uuid

# la configuración se lee al importar la app: se fija antes de cualquier import de `app`
_TEST_DIR = tempfile.mkdtemp(prefix="videotube-tests-")
os.environ.setdefault("SQLALCHEMY_DATABASE_URI", f"sqlite+aiosqlite:///{_TEST_DIR}/app.db")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("CACHE_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("MEDIA_ROOT", f"{_TEST_DIR}/media")
os.environ.setdefault("UPLOAD_TMP_DIR", f"{_TEST_DIR}/tmp")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.main import app
from app.apis.deps import get_db
from app.cores.db import Base, configure_sqlite
from app.cores.security import get_password_hash
from app.cores.token import create_access_token
from app.external.blob_store import BlobStore, BlobStoreError, StoredBlob, get_blob_store
from app.models import User, Video


class FakeBlobStore(BlobStore):
    """Blob store en memoria; se le puede pedir que falle o que se cuelgue por carpeta ("images", "videos")."""

    def __init__(self):
        self.blobs = {}
        self.deleted = []
        self.staged_paths = []
        self.fail_folders = set()
        self.hang_folders = set()

    async def store(self, file_path, folder):
        self.staged_paths.append(file_path)
        if folder in self.hang_folders:
            await asyncio.sleep(3600)
        if folder in self.fail_folders:
            raise BlobStoreError("storage unavailable")
        with open(file_path, "rb") as staged:
            data = staged.read()
        storage_id = f"{folder}/{uuid.uuid4().hex}"
        self.blobs[storage_id] = data
        return StoredBlob(url=f"https://cdn.test/{storage_id}", storage_id=storage_id)

    async def delete(self, storage_id):
        self.deleted.append(storage_id)
        self.blobs.pop(storage_id, None)


@pytest.fixture
async def engine(tmp_path):
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    configure_sqlite(test_engine)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    from app.configs.settings import settings

    staging = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOAD_TMP_DIR", str(staging))
    return staging


@pytest.fixture
async def client(session_factory, blob_store, upload_dir):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    async def factory(username="alice", email=None, password="Password123", fullname="Alice Doe"):
        user = User(
            username=username,
            email=email or f"{username}@example.com",
            fullname=fullname,
            password=get_password_hash(password),
            avatar="https://cdn.test/default-avatar.png",
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    return factory


@pytest.fixture
def make_video(db):
    async def factory(owner, title="Intro to asyncio", views=0, duration=120.0, is_published=True, created_at=None):
        video = Video(
            title=title,
            description=f"{title} description",
            duration=duration,
            video_file="https://cdn.test/videos/file.mp4",
            thumbnail="https://cdn.test/images/thumb.png",
            owner_id=owner.id,
            is_published=is_published,
            views=views,
        )
        if created_at is not None:
            video.created_at = created_at
        db.add(video)
        await db.commit()
        await db.refresh(video)
        return video

    return factory


def auth_headers(user):
    token = create_access_token(data={"user_id": user.id, "email": user.email, "username": user.username})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth():
    return auth_headers
