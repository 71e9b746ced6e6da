import asyncio
import json
import uuid

import pytest
from fastapi.testclient import TestClient

from src.chatbot.api.main import create_app
from src.chatbot.domain.chat_models import PostRequestBody, RequestHints
from src.chatbot.domain.errors import ChatSDKError
from src.chatbot.infrastructure.stream_context import ResumableStreamContext
from src.chatbot.security.auth import User
from src.chatbot.services.chat_turn import ChatTurnController
from tests.utils import (
    FakeProvider,
    FakeRedis,
    ScriptedModel,
    auth_headers,
    chat_body,
    make_context,
    parse_sse,
)


def _client(provider):
    ctx = make_context(provider)
    return ctx, TestClient(create_app(ctx))


def _types(events):
    return [e["type"] if isinstance(e, dict) else e for e in events]


def test_new_chat_streams_reply_and_persists_both_messages():
    provider = FakeProvider(
        {
            "title-model": ScriptedModel(completion='"Greeting"'),
            "chat-model": ScriptedModel(steps=[(["Hi ", "there"], [])]),
        }
    )
    ctx, client = _client(provider)
    uid = str(uuid.uuid4())
    body = chat_body(text="Hello")

    res = client.post("/api/chat", json=body, headers=auth_headers(ctx, user_id=uid))
    assert res.status_code == 200
    assert res.headers["x-vercel-ai-ui-message-stream"] == "v1"
    events = parse_sse(res.text)
    assert _types(events) == [
        "start",
        "start-step",
        "text-start",
        "text-delta",
        "text-delta",
        "text-end",
        "finish-step",
        "finish",
        "[DONE]",
    ]
    assert "".join(e["delta"] for e in events if isinstance(e, dict) and e["type"] == "text-delta") == "Hi there"

    chat = ctx.chats.get_chat_by_id(body["id"])
    assert chat.title == "Greeting"
    assert chat.user_id == uid
    messages = ctx.chats.get_messages_by_chat_id(body["id"])
    assert [m.role for m in messages] == ["user", "assistant"]
    assert messages[0].parts == [{"type": "text", "text": "Hello"}]
    assert messages[1].parts == [{"type": "text", "text": "Hi there"}]
    assert messages[1].id == events[0]["messageId"]


def test_existing_chat_keeps_title_and_sends_history():
    model = ScriptedModel(steps=[(["One"], []), (["Two"], [])])
    provider = FakeProvider({"chat-model": model})
    ctx, client = _client(provider)
    uid = str(uuid.uuid4())
    chat_id = str(uuid.uuid4())

    client.post("/api/chat", json=chat_body(chat_id, "first"), headers=auth_headers(ctx, user_id=uid))
    client.post("/api/chat", json=chat_body(chat_id, "second"), headers=auth_headers(ctx, user_id=uid))

    assert provider.requested.count("title-model") == 1
    assert len(ctx.chats.get_messages_by_chat_id(chat_id)) == 4
    second_call = [c for c in model.calls if c["op"] == "stream_step"][1]
    assert len(second_call["messages"]) == 3


def test_quota_exceeded_rejects_before_any_work():
    provider = FakeProvider()
    ctx, client = _client(provider)
    uid = str(uuid.uuid4())
    ctx.chats.save_chat("old-chat", uid, "Old")
    ctx.chats.save_messages(
        [
            {"id": str(uuid.uuid4()), "chat_id": "old-chat", "role": "user", "parts": [{"type": "text", "text": "x"}], "attachments": []}
            for _ in range(21)
        ]
    )
    body = chat_body()

    res = client.post("/api/chat", json=body, headers=auth_headers(ctx, user_id=uid, user_type="guest"))
    assert res.status_code == 429
    assert res.json()["code"] == "rate_limit:chat"
    assert ctx.chats.get_chat_by_id(body["id"]) is None
    assert provider.requested == []


def test_regular_users_have_a_larger_allowance():
    ctx, client = _client(FakeProvider())
    uid = str(uuid.uuid4())
    ctx.chats.save_chat("old-chat", uid, "Old")
    ctx.chats.save_messages(
        [
            {"id": str(uuid.uuid4()), "chat_id": "old-chat", "role": "user", "parts": [{"type": "text", "text": "x"}], "attachments": []}
            for _ in range(21)
        ]
    )
    res = client.post("/api/chat", json=chat_body(), headers=auth_headers(ctx, user_id=uid))
    assert res.status_code == 200


def test_invalid_bodies_are_bad_requests():
    ctx, client = _client(FakeProvider())
    headers = auth_headers(ctx)
    bad_id = chat_body()
    bad_id["id"] = "not-a-uuid"
    long_text = chat_body(text="x" * 2001)
    unknown_model = chat_body(model="gpt-5")

    for body in (bad_id, long_text, unknown_model):
        res = client.post("/api/chat", json=body, headers=headers)
        assert res.status_code == 400
        assert res.json()["code"] == "bad_request:api"


def test_missing_token_is_unauthorized():
    ctx, client = _client(FakeProvider())
    res = client.post("/api/chat", json=chat_body())
    assert res.status_code == 401
    assert res.json()["code"] == "unauthorized:chat"


def test_foreign_chat_is_forbidden_and_nothing_is_saved():
    provider = FakeProvider()
    ctx, client = _client(provider)
    ctx.chats.save_chat("11111111-1111-1111-1111-111111111111", "owner", "Theirs")
    body = chat_body("11111111-1111-1111-1111-111111111111")

    res = client.post("/api/chat", json=body, headers=auth_headers(ctx, user_id="intruder"))
    assert res.status_code == 403
    assert res.json()["code"] == "forbidden:chat"
    assert ctx.chats.get_messages_by_chat_id(body["id"]) == []
    assert "chat-model" not in provider.requested


def test_model_failure_ends_stream_with_error_and_skips_assistant_message():
    provider = FakeProvider({"chat-model": ScriptedModel(error=RuntimeError("boom"))})
    ctx, client = _client(provider)
    body = chat_body()

    res = client.post("/api/chat", json=body, headers=auth_headers(ctx))
    assert res.status_code == 200
    events = parse_sse(res.text)
    assert events[-2] == {"type": "error", "errorText": "Oops, an error occurred!"}
    assert events[-1] == "[DONE]"
    assert "finish" not in _types(events)
    assert [m.role for m in ctx.chats.get_messages_by_chat_id(body["id"])] == ["user"]


def test_create_chart_tool_flow_persists_chart_and_tool_parts():
    chart_args = {"title": "Sales", "type": "bar", "data": [{"month": "Jan", "value": 10}], "xAxis": "month", "yAxis": "value"}
    provider = FakeProvider(
        {"chat-model": ScriptedModel(steps=[([], [("createChart", chart_args)]), (["Here it is"], [])])}
    )
    ctx, client = _client(provider)
    body = chat_body(text="chart my sales")

    events = parse_sse(client.post("/api/chat", json=body, headers=auth_headers(ctx)).text)
    types = _types(events)
    assert types.count("start-step") == 2
    assert types.index("tool-input-available") < types.index("data-textDelta") < types.index("tool-output-available")
    output = next(e for e in events if isinstance(e, dict) and e["type"] == "tool-output-available")["output"]
    assert output["type"] == "bar"
    assert output["content"] == output["chartData"]

    assistant = ctx.chats.get_messages_by_chat_id(body["id"])[-1]
    assert [p["type"] for p in assistant.parts] == ["data-textDelta", "tool-createChart", "text"]
    tool_part = assistant.parts[1]
    assert tool_part["state"] == "output-available"
    assert tool_part["input"] == chart_args
    stored = ctx.documents.get_document_by_id(output["id"])
    assert stored.content == output["content"]


def test_generation_failure_inside_tool_aborts_turn():
    provider = FakeProvider(
        {
            "chat-model": ScriptedModel(steps=[([], [("createDocument", {"title": "Essay", "kind": "text"})])]),
            "artifact-model": ScriptedModel(text_chunks=["a ", "b "], fail_after=1),
        }
    )
    ctx, client = _client(provider)
    body = chat_body()

    events = parse_sse(client.post("/api/chat", json=body, headers=auth_headers(ctx)).text)
    types = _types(events)
    assert "tool-output-available" not in types
    assert types[-2:] == ["error", "[DONE]"]
    assert [m.role for m in ctx.chats.get_messages_by_chat_id(body["id"])] == ["user"]


def test_unknown_tool_reports_error_and_loop_continues():
    provider = FakeProvider({"chat-model": ScriptedModel(steps=[([], [("noSuchTool", {})]), (["Sorry"], [])])})
    ctx, client = _client(provider)
    body = chat_body()

    events = parse_sse(client.post("/api/chat", json=body, headers=auth_headers(ctx)).text)
    err = next(e for e in events if isinstance(e, dict) and e["type"] == "tool-output-error")
    assert err["errorText"] == "Unknown tool: noSuchTool"
    assert _types(events)[-2] == "finish"

    assistant = ctx.chats.get_messages_by_chat_id(body["id"])[-1]
    assert assistant.parts[0]["state"] == "output-error"
    assert assistant.parts[-1] == {"type": "text", "text": "Sorry"}


def test_loop_stops_after_max_steps():
    call = ("updateDocument", {"id": "missing", "description": "x"})
    model = ScriptedModel(steps=[([], [call]) for _ in range(7)])
    ctx, client = _client(FakeProvider({"chat-model": model}))
    body = chat_body()

    events = parse_sse(client.post("/api/chat", json=body, headers=auth_headers(ctx)).text)
    types = _types(events)
    assert types.count("start-step") == 5
    assert types.count("tool-output-available") == 5
    assert types[-2] == "finish"
    outputs = [e["output"] for e in events if isinstance(e, dict) and e["type"] == "tool-output-available"]
    assert outputs[0] == {"error": "Document not found"}
    assert len(model.steps) == 2


def test_delete_chat_checks_and_returns_deleted_chat():
    ctx, client = _client(FakeProvider())
    ctx.chats.save_chat("c1", "owner", "Mine")

    assert client.delete("/api/chat").status_code == 400
    assert client.delete("/api/chat?id=c1").status_code == 401
    assert client.delete("/api/chat?id=nope", headers=auth_headers(ctx, user_id="owner")).status_code == 404
    assert client.delete("/api/chat?id=c1", headers=auth_headers(ctx, user_id="other")).status_code == 403

    res = client.delete("/api/chat?id=c1", headers=auth_headers(ctx, user_id="owner"))
    assert res.status_code == 200
    assert res.json()["id"] == "c1"
    assert ctx.chats.get_chat_by_id("c1") is None


def test_resume_without_redis_returns_no_content():
    ctx, client = _client(FakeProvider())
    uid = str(uuid.uuid4())
    body = chat_body()
    client.post("/api/chat", json=body, headers=auth_headers(ctx, user_id=uid))

    res = client.get(f"/api/chat/{body['id']}/stream", headers=auth_headers(ctx, user_id=uid))
    assert res.status_code == 204
    assert client.get(f"/api/chat/{body['id']}/stream").status_code == 401
    assert client.get("/api/chat/unknown/stream", headers=auth_headers(ctx, user_id=uid)).status_code == 404
    assert client.get(f"/api/chat/{body['id']}/stream", headers=auth_headers(ctx)).status_code == 403


def test_resume_replays_mirrored_stream():
    provider = FakeProvider({"chat-model": ScriptedModel(steps=[(["Stored ", "reply"], [])])})
    ctx = make_context(provider, stream_context=ResumableStreamContext(FakeRedis()))
    client = TestClient(create_app(ctx))
    uid = str(uuid.uuid4())
    body = chat_body()

    original = client.post("/api/chat", json=body, headers=auth_headers(ctx, user_id=uid))
    replay = client.get(f"/api/chat/{body['id']}/stream", headers=auth_headers(ctx, user_id=uid))
    assert replay.status_code == 200
    assert replay.text == original.text
    assert parse_sse(replay.text)[-1] == "[DONE]"


def _prepared_body(chat_id, text="Hello"):
    return PostRequestBody.model_validate(chat_body(chat_id, text))


@pytest.mark.asyncio
async def test_concurrent_first_turns_share_one_chat():
    provider = FakeProvider({"title-model": ScriptedModel(completion="Race", delay=0.05)})
    ctx = make_context(provider)
    controller = ChatTurnController(ctx)
    user = User(id="u1", email="u1@example.com")
    chat_id = str(uuid.uuid4())

    turns = await asyncio.gather(
        controller.prepare(_prepared_body(chat_id, "one"), user, RequestHints()),
        controller.prepare(_prepared_body(chat_id, "two"), user, RequestHints()),
    )
    assert sorted(t.created_chat for t in turns) == [False, True]
    assert ctx.chats.get_chat_by_id(chat_id).title == "Race"
    assert len(ctx.chats.get_messages_by_chat_id(chat_id)) == 2


@pytest.mark.asyncio
async def test_concurrent_first_turn_by_another_user_is_forbidden():
    provider = FakeProvider({"title-model": ScriptedModel(delay=0.05)})
    ctx = make_context(provider)
    controller = ChatTurnController(ctx)
    chat_id = str(uuid.uuid4())

    results = await asyncio.gather(
        controller.prepare(_prepared_body(chat_id), User(id="alice", email="a@example.com"), RequestHints()),
        controller.prepare(_prepared_body(chat_id), User(id="bob", email="b@example.com"), RequestHints()),
        return_exceptions=True,
    )
    errors = [r for r in results if isinstance(r, ChatSDKError)]
    assert len(errors) == 1
    assert errors[0].code == "forbidden:chat"
    assert ctx.chats.get_chat_by_id(chat_id).user_id in ("alice", "bob")
    assert [m.role for m in ctx.chats.get_messages_by_chat_id(chat_id)] == ["user"]


@pytest.mark.asyncio
@pytest.mark.parametrize("mirrored", [False, True])
async def test_client_disconnect_cancels_turn_without_saving_assistant(mirrored):
    provider = FakeProvider({"chat-model": ScriptedModel(steps=[(["late ", "reply"], [])], delay=0.05)})
    redis = FakeRedis()
    ctx = make_context(provider, stream_context=ResumableStreamContext(redis) if mirrored else None)
    controller = ChatTurnController(ctx)
    turn = await controller.prepare(_prepared_body(str(uuid.uuid4())), User(id="u1", email="u1@example.com"), RequestHints())

    if mirrored:
        response = ctx.stream_context.resumable_stream(turn.stream_id, lambda: controller.stream(turn))
    else:
        response = controller.stream(turn)
    first = await response.__anext__()
    assert json.loads(first[len("data: "):])["type"] == "start"
    await response.aclose()

    # Long enough for the scripted model to have finished had the turn kept running
    await asyncio.sleep(0.15)
    assert [m.role for m in ctx.chats.get_messages_by_chat_id(turn.chat_id)] == ["user"]
    if mirrored:
        assert f"chatbot:stream:{turn.stream_id}:done" not in redis.values
