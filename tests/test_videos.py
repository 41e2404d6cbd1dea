import os

import pytest
from sqlalchemy import func, select

from app.configs.settings import settings
from app.models import Comment, Like, LikeTargetKind, Playlist, PlaylistVideo, Video, WatchHistory

MP4_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 128
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def publish_files(thumbnail=True):
    files = {"videoFile": ("clip.mp4", MP4_BYTES, "video/mp4")}
    if thumbnail:
        files["thumbnail"] = ("thumb.png", PNG_BYTES, "image/png")
    return files


PUBLISH_FORM = {"title": "Async Python", "description": "Event loops explained", "duration": "321.5"}


# -----------------------------
# Publish
# -----------------------------
@pytest.mark.asyncio
async def test_publish_video(client, auth, make_user, blob_store, upload_dir):
    owner = await make_user()

    response = await client.post("/api/v1/videos", data=PUBLISH_FORM, files=publish_files(), headers=auth(owner))

    assert response.status_code == 201, response.text
    data = response.json()["data"]
    assert data["title"] == "Async Python"
    assert data["duration"] == 321.5
    assert data["videoFile"].startswith("https://cdn.test/videos/")
    assert data["thumbnail"].startswith("https://cdn.test/images/")
    assert data["isPublished"] is True
    assert data["views"] == 0
    assert os.listdir(upload_dir) == []


@pytest.mark.asyncio
async def test_publish_without_video_file(client, auth, make_user):
    owner = await make_user()

    response = await client.post("/api/v1/videos", data=PUBLISH_FORM, headers=auth(owner))

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "videoFile"


@pytest.mark.asyncio
async def test_thumbnail_failure_falls_back_to_default(client, auth, make_user, blob_store, upload_dir):
    owner = await make_user()
    blob_store.fail_folders = {"images"}

    response = await client.post("/api/v1/videos", data=PUBLISH_FORM, files=publish_files(), headers=auth(owner))

    assert response.status_code == 201
    assert response.json()["data"]["thumbnail"] == settings.DEFAULT_THUMBNAIL_URL
    assert os.listdir(upload_dir) == []


@pytest.mark.asyncio
async def test_video_storage_failure_persists_nothing(client, db, auth, make_user, blob_store, upload_dir):
    owner = await make_user()
    blob_store.fail_folders = {"videos"}

    response = await client.post("/api/v1/videos", data=PUBLISH_FORM, files=publish_files(), headers=auth(owner))

    assert response.status_code == 500
    assert (await db.execute(select(func.count(Video.id)))).scalar() == 0
    assert all(not os.path.exists(path) for path in blob_store.staged_paths)


@pytest.mark.asyncio
async def test_video_upload_timeout(client, auth, make_user, blob_store, upload_dir, monkeypatch):
    owner = await make_user()
    monkeypatch.setattr(settings, "UPLOAD_TIMEOUT_SECONDS", 0.05)
    blob_store.hang_folders = {"videos"}

    response = await client.post("/api/v1/videos", data=PUBLISH_FORM, files=publish_files(False), headers=auth(owner))

    assert response.status_code == 500
    assert os.listdir(upload_dir) == []


@pytest.mark.asyncio
async def test_publish_requires_auth(client):
    response = await client.post("/api/v1/videos", data=PUBLISH_FORM, files=publish_files())

    assert response.status_code == 401


# -----------------------------
# Listing
# -----------------------------
@pytest.mark.asyncio
async def test_listing_shows_published_only(client, make_user, make_video):
    owner = await make_user()
    await make_video(owner, title="Public talk")
    await make_video(owner, title="Draft talk", is_published=False)

    response = await client.get("/api/v1/videos")

    items = response.json()["data"]["items"]
    assert [item["title"] for item in items] == ["Public talk"]
    assert items[0]["owner"] == {
        "id": owner.id,
        "username": owner.username,
        "fullname": owner.fullname,
        "avatar": owner.avatar,
    }


@pytest.mark.asyncio
async def test_listing_search_and_sort(client, make_user, make_video):
    owner = await make_user()
    await make_video(owner, title="Django basics", views=5)
    await make_video(owner, title="FastAPI deep dive", views=50)
    await make_video(owner, title="FastAPI testing", views=10)

    response = await client.get("/api/v1/videos", params={"query": "fastapi", "sortBy": "views", "sortType": "asc"})

    titles = [item["title"] for item in response.json()["data"]["items"]]
    assert titles == ["FastAPI testing", "FastAPI deep dive"]


@pytest.mark.asyncio
async def test_search_query_too_long(client):
    response = await client.get("/api/v1/videos", params={"query": "x" * 101})

    assert response.status_code == 400


# -----------------------------
# Detail
# -----------------------------
@pytest.mark.asyncio
async def test_fetch_increments_views_and_history(client, db, auth, make_user, make_video):
    owner = await make_user(username="owner")
    viewer = await make_user(username="viewer")
    first = await make_video(owner, title="First")
    second = await make_video(owner, title="Second")

    await client.get(f"/api/v1/videos/{first.id}", headers=auth(viewer))
    await client.get(f"/api/v1/videos/{second.id}", headers=auth(viewer))
    response = await client.get(f"/api/v1/videos/{first.id}", headers=auth(viewer))

    data = response.json()["data"]
    assert data["views"] == 2
    assert data["owner"]["subscribersCount"] == 0
    assert data["isLiked"] is False

    history = await client.get("/api/v1/users/history", headers=auth(viewer))
    assert [item["title"] for item in history.json()["data"]["items"]] == ["First", "Second"]
    rows = (await db.execute(select(func.count(WatchHistory.id)))).scalar()
    assert rows == 2


@pytest.mark.asyncio
async def test_unpublished_video_visible_to_owner_only(client, auth, make_user, make_video):
    owner = await make_user(username="owner")
    other = await make_user(username="other")
    video = await make_video(owner, is_published=False)

    assert (await client.get(f"/api/v1/videos/{video.id}")).status_code == 404
    assert (await client.get(f"/api/v1/videos/{video.id}", headers=auth(other))).status_code == 404
    assert (await client.get(f"/api/v1/videos/{video.id}", headers=auth(owner))).status_code == 200


# -----------------------------
# Update / delete
# -----------------------------
@pytest.mark.asyncio
async def test_update_requires_owner(client, auth, make_user, make_video):
    owner = await make_user(username="owner")
    other = await make_user(username="other")
    video = await make_video(owner)

    forbidden = await client.patch(f"/api/v1/videos/{video.id}", data={"title": "Mine now"}, headers=auth(other))
    assert forbidden.status_code == 403

    missing = await client.patch("/api/v1/videos/999", data={"title": "Nothing"}, headers=auth(owner))
    assert missing.status_code == 404

    updated = await client.patch(f"/api/v1/videos/{video.id}", data={"title": "Renamed"}, headers=auth(owner))
    assert updated.status_code == 200
    assert updated.json()["data"]["title"] == "Renamed"


@pytest.mark.asyncio
async def test_thumbnail_replacement_deletes_previous_blob(client, auth, make_user, blob_store):
    owner = await make_user()
    published = await client.post("/api/v1/videos", data=PUBLISH_FORM, files=publish_files(), headers=auth(owner))
    video = published.json()["data"]
    old_thumbnail_id = video["thumbnail"].replace("https://cdn.test/", "")

    response = await client.patch(
        f"/api/v1/videos/{video['id']}",
        files={"thumbnail": ("new.png", PNG_BYTES, "image/png")},
        headers=auth(owner),
    )

    assert response.status_code == 200
    assert response.json()["data"]["thumbnail"] != video["thumbnail"]
    assert blob_store.deleted == [old_thumbnail_id]


@pytest.mark.asyncio
async def test_delete_cascades(client, db, auth, make_user, make_video, blob_store):
    owner = await make_user(username="owner")
    fan = await make_user(username="fan")
    video = await make_video(owner)
    comment = Comment(content="bye", video_id=video.id, owner_id=fan.id)
    playlist = Playlist(name="Favs", name_key="favs", owner_id=fan.id)
    db.add_all([comment, playlist])
    await db.commit()
    db.add_all([
        Like(liked_by_id=fan.id, target_kind=LikeTargetKind.VIDEO.value, target_id=video.id),
        Like(liked_by_id=owner.id, target_kind=LikeTargetKind.COMMENT.value, target_id=comment.id),
        PlaylistVideo(playlist_id=playlist.id, video_id=video.id, position=1),
        WatchHistory(user_id=fan.id, video_id=video.id),
    ])
    await db.commit()

    response = await client.delete(f"/api/v1/videos/{video.id}", headers=auth(owner))

    assert response.status_code == 200
    for model in (Video, Comment, Like, PlaylistVideo, WatchHistory):
        assert (await db.execute(select(func.count()).select_from(model))).scalar() == 0


@pytest.mark.asyncio
async def test_toggle_publish(client, auth, make_user, make_video):
    owner = await make_user()
    video = await make_video(owner)

    response = await client.patch(f"/api/v1/videos/toggle/publish/{video.id}", headers=auth(owner))

    assert response.status_code == 200
    assert response.json()["data"]["isPublished"] is False
    listing = await client.get("/api/v1/videos")
    assert listing.json()["data"]["items"] == []
