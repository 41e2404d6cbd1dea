import pytest


@pytest.fixture
async def channel_setup(make_user):
    channel = await make_user(username="techchannel", fullname="Tech Channel")
    fan = await make_user(username="fan")
    other = await make_user(username="other")
    return channel, fan, other


@pytest.mark.asyncio
async def test_channel_profile_counts(client, auth, channel_setup):
    channel, fan, other = channel_setup
    await client.post(f"/api/v1/subscriptions/toggle/{channel.id}", headers=auth(fan))
    await client.post(f"/api/v1/subscriptions/toggle/{channel.id}", headers=auth(other))
    await client.post(f"/api/v1/subscriptions/toggle/{fan.id}", headers=auth(channel))

    response = await client.get("/api/v1/users/c/TechChannel", headers=auth(fan))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["username"] == "techchannel"
    assert data["subscribersCount"] == 2
    assert data["channelsSubscribedToCount"] == 1
    assert data["isSubscribed"] is True
    assert "password" not in data


@pytest.mark.asyncio
async def test_channel_profile_anonymous_viewer(client, channel_setup):
    response = await client.get("/api/v1/users/c/techchannel")

    assert response.status_code == 200
    assert response.json()["data"]["isSubscribed"] is False


@pytest.mark.asyncio
async def test_unknown_channel(client):
    response = await client.get("/api/v1/users/c/nobody")

    assert response.status_code == 404
    assert response.json()["message"] == "Channel not found"


@pytest.mark.asyncio
async def test_subscriber_and_channel_lists(client, auth, channel_setup):
    channel, fan, other = channel_setup
    await client.post(f"/api/v1/subscriptions/toggle/{channel.id}", headers=auth(fan))
    await client.post(f"/api/v1/subscriptions/toggle/{channel.id}", headers=auth(other))

    subscribers = await client.get(
        f"/api/v1/subscriptions/channel/{channel.id}/subscribers",
        params={"sortOrder": "asc"},
        headers=auth(channel),
    )
    data = subscribers.json()["data"]
    assert [item["username"] for item in data["items"]] == ["fan", "other"]
    assert data["pagination"]["totalSubscribers"] == 2
    assert data["pagination"]["limit"] == 20

    channels = await client.get(f"/api/v1/subscriptions/user/{fan.id}/channels", headers=auth(fan))
    assert [item["username"] for item in channels.json()["data"]["items"]] == ["techchannel"]
    assert channels.json()["data"]["pagination"]["totalChannels"] == 1


@pytest.mark.asyncio
async def test_subscription_lists_require_auth(client, channel_setup):
    channel, fan, other = channel_setup

    response = await client.get(f"/api/v1/subscriptions/channel/{channel.id}/subscribers")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_watch_history_requires_auth(client):
    response = await client.get("/api/v1/users/history")

    assert response.status_code == 401
