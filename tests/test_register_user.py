import os

import pytest

from app.configs.settings import settings

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64

REGISTER_URL = "/api/v1/users/register"


def register_form(**overrides):
    form = {
        "fullname": "Luis Cruz",
        "email": "luis@example.com",
        "username": "luiscruz",
        "password": "Password123",
    }
    form.update(overrides)
    return form


@pytest.mark.asyncio
async def test_register_user(client):
    response = await client.post(REGISTER_URL, data=register_form())
    print(response.text)

    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    assert data["data"]["username"] == "luiscruz"
    assert data["data"]["avatar"] == settings.DEFAULT_AVATAR_URL
    assert data["data"]["coverImage"] == settings.DEFAULT_COVER_URL
    assert "password" not in data["data"]
    assert "refreshToken" not in data["data"]


@pytest.mark.asyncio
async def test_register_normalizes_email_and_username(client):
    response = await client.post(REGISTER_URL, data=register_form(email="Luis@Example.COM", username="LuisCruz"))

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["email"] == "luis@example.com"
    assert data["username"] == "luiscruz"


# 1. Campos faltantes (sin email)
@pytest.mark.asyncio
async def test_missing_fields(client):
    form = register_form()
    del form["email"]
    response = await client.post(REGISTER_URL, data=form)

    assert response.status_code == 422
    data = response.json()
    assert data["success"] is False
    assert data["statusText"] == "Unprocessable Entity"
    assert any(error["field"] == "email" for error in data["errors"])


# 2. Contraseña débil
@pytest.mark.asyncio
async def test_password_without_digit(client):
    response = await client.post(REGISTER_URL, data=register_form(password="Passwordonly"))

    assert response.status_code == 422
    errors = response.json()["errors"]
    assert [error["field"] for error in errors] == ["password"]


@pytest.mark.asyncio
async def test_duplicate_email(client, make_user):
    await make_user(username="taken", email="luis@example.com")

    response = await client.post(REGISTER_URL, data=register_form())
    print("CORREO DUPLICADO:", response.text)

    assert response.status_code == 409
    data = response.json()
    assert data["message"] == "User with this email or username already exists"
    assert data["errors"] == [{"field": "email", "message": "Email already in use"}]


@pytest.mark.asyncio
async def test_duplicate_email_and_username(client, make_user):
    await make_user(username="luiscruz", email="luis@example.com")

    response = await client.post(REGISTER_URL, data=register_form())

    assert response.status_code == 409
    assert {error["field"] for error in response.json()["errors"]} == {"email", "username"}


@pytest.mark.asyncio
async def test_register_with_avatar(client, blob_store, upload_dir):
    response = await client.post(
        REGISTER_URL,
        data=register_form(),
        files={"avatar": ("me.png", PNG_BYTES, "image/png")},
    )

    assert response.status_code == 201
    avatar = response.json()["data"]["avatar"]
    assert avatar.startswith("https://cdn.test/images/")
    assert len(blob_store.blobs) == 1
    assert os.listdir(upload_dir) == []


@pytest.mark.asyncio
async def test_register_falls_back_when_storage_fails(client, blob_store, upload_dir):
    blob_store.fail_folders = {"images"}

    response = await client.post(
        REGISTER_URL,
        data=register_form(),
        files={
            "avatar": ("me.png", PNG_BYTES, "image/png"),
            "coverImage": ("cover.png", PNG_BYTES, "image/png"),
        },
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["avatar"] == settings.DEFAULT_AVATAR_URL
    assert data["coverImage"] == settings.DEFAULT_COVER_URL
    assert len(blob_store.staged_paths) == 2
    assert all(not os.path.exists(path) for path in blob_store.staged_paths)


@pytest.mark.asyncio
async def test_register_falls_back_when_storage_hangs(client, blob_store, upload_dir, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_TIMEOUT_SECONDS", 0.05)
    blob_store.hang_folders = {"images"}

    response = await client.post(
        REGISTER_URL,
        data=register_form(),
        files={"avatar": ("me.png", PNG_BYTES, "image/png")},
    )

    assert response.status_code == 201
    assert response.json()["data"]["avatar"] == settings.DEFAULT_AVATAR_URL
    assert os.listdir(upload_dir) == []


@pytest.mark.asyncio
async def test_register_ignores_invalid_avatar_type(client, blob_store):
    response = await client.post(
        REGISTER_URL,
        data=register_form(),
        files={"avatar": ("notes.txt", b"hello", "text/plain")},
    )

    assert response.status_code == 201
    assert response.json()["data"]["avatar"] == settings.DEFAULT_AVATAR_URL
    assert blob_store.staged_paths == []
