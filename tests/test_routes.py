import httpx
import pytest

import main
from helpers import profile_store
from helpers.errors import StorageError, UpstreamError
from main import create_app
from models.conversation import Conversation
from models.user import User

PHONE = "+15551234567"


@pytest.fixture
async def client(db, ctx):
    app = create_app(context=ctx)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def test_get_user_auto_creates_profile(client):
    r = await client.get(f"/user/{PHONE}")

    assert r.status_code == 200
    body = r.json()
    assert body["phoneNumber"] == PHONE
    assert body["name"] == f"User-{PHONE}"
    assert body["preferences"] == {"speechStyle": "neutral", "favoriteTopics": []}
    assert body["callHistory"] == []
    assert await User.filter(phone_number=PHONE).count() == 1


async def test_get_user_twice_keeps_one_record(client):
    first = (await client.get(f"/user/{PHONE}")).json()
    second = (await client.get(f"/user/{PHONE}")).json()

    assert first["id"] == second["id"]
    assert await User.all().count() == 1


async def test_get_user_storage_failure_is_500(client, monkeypatch):
    async def broken(phone_number):
        raise StorageError("connection lost")

    monkeypatch.setattr(profile_store, "get_or_create_user", broken)

    r = await client.get(f"/user/{PHONE}")

    assert r.status_code == 500
    assert r.json() == {"error": "connection lost"}


@pytest.mark.parametrize(
    "payload",
    [
        {"phoneNumber": PHONE},
        {"transcript": [{"speaker": "agent", "message": "hi"}]},
        {"phoneNumber": "", "transcript": [{"speaker": "agent", "message": "hi"}]},
        {},
    ],
)
async def test_post_conversation_requires_both_fields(client, payload):
    r = await client.post("/conversation", json=payload)

    assert r.status_code == 400
    assert r.json() == {"error": "Phone number and transcript required."}
    assert await Conversation.all().count() == 0


async def test_post_conversation_without_body_is_400(client):
    r = await client.post("/conversation", content=b"not json", headers={"content-type": "application/json"})

    assert r.status_code == 400
    assert await Conversation.all().count() == 0


async def test_post_conversation_rejects_non_list_transcript(client):
    r = await client.post("/conversation", json={"phoneNumber": PHONE, "transcript": "hello there"})

    assert r.status_code == 400
    assert await Conversation.all().count() == 0


async def test_post_conversation_saves_record(client):
    transcript = [
        {"speaker": "agent", "message": "Hello!", "timestamp": "2026-10-19T10:00:00+00:00"},
        {"speaker": "user", "message": "Hi there."},
    ]

    r = await client.post("/conversation", json={"phoneNumber": PHONE, "transcript": transcript})

    assert r.status_code == 201
    body = r.json()
    assert body["message"] == "Conversation saved."
    conv = body["conversation"]
    user = await User.get(phone_number=PHONE)
    assert conv["userId"] == user.id
    assert [(t["speaker"], t["message"]) for t in conv["transcript"]] == [
        ("agent", "Hello!"),
        ("user", "Hi there."),
    ]
    assert conv["transcript"][0]["timestamp"].startswith("2026-10-19T10:00:00")
    assert conv["transcript"][1]["timestamp"] is None
    assert await Conversation.filter(user_id=user.id).count() == 1


async def test_post_conversation_for_known_user_reuses_profile(client):
    await client.get(f"/user/{PHONE}")

    r = await client.post("/conversation", json={"phoneNumber": PHONE, "transcript": []})

    assert r.status_code == 201
    assert await User.all().count() == 1


async def test_post_calls_places_call(client, twilio, scheduler):
    r = await client.post("/calls", json={"phoneNumber": PHONE})

    assert r.status_code == 202
    assert r.json()["callSid"] == "CA123"
    assert twilio.placed[0]["to"] == PHONE
    assert scheduler.delays == [60]


async def test_post_calls_requires_number(client, twilio):
    r = await client.post("/calls", json={})

    assert r.status_code == 400
    assert twilio.placed == []


async def test_post_calls_upstream_failure_is_502(client, twilio):
    twilio.place_error = UpstreamError("Twilio rejected the call: invalid number")

    r = await client.post("/calls", json={"phoneNumber": PHONE})

    assert r.status_code == 502
    assert r.json() == {"error": "Twilio rejected the call: invalid number"}


async def test_recording_status_of_call(client, scheduler):
    await client.post("/calls", json={"phoneNumber": PHONE})

    r = await client.get("/calls/CA123/recording")
    assert r.status_code == 200
    assert r.json()["state"] == "scheduled"

    r = await client.delete("/calls/CA123/recording")
    assert r.json()["state"] == "cancelled"
    assert scheduler.pending == []

    assert (await client.get("/calls/CA999/recording")).status_code == 404


async def test_recording_status_callback_is_accepted(client):
    r = await client.post(
        "/recording-status",
        data={"CallSid": "CA123", "RecordingSid": "RE1", "RecordingStatus": "completed"},
    )

    assert r.status_code == 204


async def test_health_checks_storage(client):
    r = await client.get("/health")

    assert r.status_code == 200
    assert r.json() == {"ok": True}


async def test_health_is_503_when_storage_is_down(client, monkeypatch):
    async def unreachable():
        raise StorageError("Storage unavailable: connection refused")

    monkeypatch.setattr(main, "check_storage", unreachable)

    r = await client.get("/health")

    assert r.status_code == 503
    assert r.json() == {"ok": False, "error": "Storage unavailable: connection refused"}
