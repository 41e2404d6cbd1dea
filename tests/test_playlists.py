import pytest


async def create_playlist(client, auth, user, name="Road trip", description=None):
    body = {"name": name}
    if description:
        body["description"] = description
    response = await client.post("/api/v1/playlist", json=body, headers=auth(user))
    return response


@pytest.fixture
async def owner(make_user):
    return await make_user(username="owner")


@pytest.fixture
async def stranger(make_user):
    return await make_user(username="stranger")


@pytest.mark.asyncio
async def test_create_playlist_is_private(client, auth, owner):
    response = await create_playlist(client, auth, owner, description="Songs for the road")

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["isPublic"] is False
    assert data["videoCount"] == 0
    assert data["ownerId"] == owner.id


@pytest.mark.asyncio
async def test_playlist_name_unique_per_owner_ignoring_case(client, auth, owner, stranger):
    await create_playlist(client, auth, owner, name="Road Trip")

    duplicate = await create_playlist(client, auth, owner, name="road trip")
    assert duplicate.status_code == 409
    assert duplicate.json()["message"] == "You already have a playlist with this name"

    other_owner = await create_playlist(client, auth, stranger, name="Road Trip")
    assert other_owner.status_code == 201


@pytest.mark.asyncio
async def test_short_description_is_rejected(client, auth, owner):
    response = await create_playlist(client, auth, owner, description="short")

    assert response.status_code == 422
    assert response.json()["errors"][0]["field"] == "description"


@pytest.mark.asyncio
async def test_private_playlist_visibility(client, auth, owner, stranger):
    playlist = (await create_playlist(client, auth, owner)).json()["data"]

    forbidden = await client.get(f"/api/v1/playlist/{playlist['id']}", headers=auth(stranger))
    assert forbidden.status_code == 403

    own = await client.get(f"/api/v1/playlist/{playlist['id']}", headers=auth(owner))
    assert own.status_code == 200

    listed = await client.get(f"/api/v1/playlist/user/{owner.id}", headers=auth(stranger))
    assert listed.json()["data"]["items"] == []

    await client.patch(f"/api/v1/playlist/toggle/visibility/{playlist['id']}", headers=auth(owner))
    listed = await client.get(f"/api/v1/playlist/user/{owner.id}")
    assert [item["id"] for item in listed.json()["data"]["items"]] == [playlist["id"]]
    assert (await client.get(f"/api/v1/playlist/{playlist['id']}")).status_code == 200


@pytest.mark.asyncio
async def test_add_videos_keeps_order(client, auth, owner, make_video):
    playlist = (await create_playlist(client, auth, owner)).json()["data"]
    first = await make_video(owner, title="First")
    second = await make_video(owner, title="Second")

    for video in (second, first):
        response = await client.patch(f"/api/v1/playlist/add/{video.id}/{playlist['id']}", headers=auth(owner))
        assert response.status_code == 200

    detail = await client.get(f"/api/v1/playlist/{playlist['id']}", headers=auth(owner))
    data = detail.json()["data"]
    assert [item["title"] for item in data["items"]] == ["Second", "First"]
    assert data["playlist"]["videoCount"] == 2
    assert data["pagination"]["totalVideos"] == 2


@pytest.mark.asyncio
async def test_add_video_rules(client, auth, owner, stranger, make_video):
    playlist = (await create_playlist(client, auth, owner)).json()["data"]
    video = await make_video(owner)
    draft = await make_video(owner, title="Draft", is_published=False)
    add_url = f"/api/v1/playlist/add/{video.id}/{playlist['id']}"

    assert (await client.patch(add_url, headers=auth(owner))).status_code == 200
    assert (await client.patch(add_url, headers=auth(owner))).status_code == 409
    assert (await client.patch(add_url, headers=auth(stranger))).status_code == 403
    assert (await client.patch(f"/api/v1/playlist/add/999/{playlist['id']}", headers=auth(owner))).status_code == 404
    unpublished = await client.patch(f"/api/v1/playlist/add/{draft.id}/{playlist['id']}", headers=auth(owner))
    assert unpublished.status_code == 400


@pytest.mark.asyncio
async def test_remove_video(client, auth, owner, make_video):
    playlist = (await create_playlist(client, auth, owner)).json()["data"]
    video = await make_video(owner)
    await client.patch(f"/api/v1/playlist/add/{video.id}/{playlist['id']}", headers=auth(owner))

    removed = await client.patch(f"/api/v1/playlist/remove/{video.id}/{playlist['id']}", headers=auth(owner))
    assert removed.status_code == 200
    assert removed.json()["data"]["videoCount"] == 0

    again = await client.patch(f"/api/v1/playlist/remove/{video.id}/{playlist['id']}", headers=auth(owner))
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_unpublished_videos_are_hidden_from_playlist(client, auth, owner, make_video):
    playlist = (await create_playlist(client, auth, owner)).json()["data"]
    video = await make_video(owner)
    await client.patch(f"/api/v1/playlist/add/{video.id}/{playlist['id']}", headers=auth(owner))
    await client.patch(f"/api/v1/videos/toggle/publish/{video.id}", headers=auth(owner))

    detail = await client.get(f"/api/v1/playlist/{playlist['id']}", headers=auth(owner))

    assert detail.json()["data"]["items"] == []
    assert detail.json()["data"]["playlist"]["videoCount"] == 0


@pytest.mark.asyncio
async def test_update_rechecks_name(client, auth, owner):
    await create_playlist(client, auth, owner, name="Chill")
    playlist = (await create_playlist(client, auth, owner, name="Focus")).json()["data"]

    clash = await client.patch(f"/api/v1/playlist/{playlist['id']}", json={"name": "CHILL"}, headers=auth(owner))
    assert clash.status_code == 409

    renamed = await client.patch(f"/api/v1/playlist/{playlist['id']}", json={"name": "Deep Focus"}, headers=auth(owner))
    assert renamed.json()["data"]["name"] == "Deep Focus"

    same_name = await client.patch(f"/api/v1/playlist/{playlist['id']}", json={"name": "deep focus"}, headers=auth(owner))
    assert same_name.status_code == 200


@pytest.mark.asyncio
async def test_delete_playlist(client, auth, owner, stranger, make_video):
    playlist = (await create_playlist(client, auth, owner)).json()["data"]
    video = await make_video(owner)
    await client.patch(f"/api/v1/playlist/add/{video.id}/{playlist['id']}", headers=auth(owner))

    assert (await client.delete(f"/api/v1/playlist/{playlist['id']}", headers=auth(stranger))).status_code == 403
    assert (await client.delete(f"/api/v1/playlist/{playlist['id']}", headers=auth(owner))).status_code == 200
    assert (await client.get(f"/api/v1/playlist/{playlist['id']}", headers=auth(owner))).status_code == 404
