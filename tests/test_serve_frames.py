import json

import pytest

from aichat.serve_frames import (
    ChatCompletionsOutput,
    ToolCall,
    build_chat_completion_chunk_json,
    build_non_stream_body,
    cors_headers,
    create_done_frame,
    create_text_frame,
    create_tool_calls_frame,
    error_body,
    generate_completion_id,
    parse_tools,
    resolve_serve_addr,
)

CID = "chatcmpl-1"
MODEL = "openai:gpt-4o"
CREATED = 1700000000


def _events(frame: bytes) -> list[str]:
    text = frame.decode("utf-8")
    assert text.endswith("\n\n")
    parts = text[:-2].split("\n\n")
    assert all(p.startswith("data: ") for p in parts)
    return [p[len("data: "):] for p in parts]


def test_resolve_addr_port():
    assert resolve_serve_addr("8080", "x") == "127.0.0.1:8080"


def test_resolve_addr_ip():
    assert resolve_serve_addr("0.0.0.0", "x") == "0.0.0.0:8000"


def test_resolve_addr_passthrough_and_default():
    assert resolve_serve_addr("localhost:9000", "x") == "localhost:9000"
    assert resolve_serve_addr("70000", "x") == "70000"
    assert resolve_serve_addr(None, "127.0.0.1:8000") == "127.0.0.1:8000"


def test_generate_completion_id():
    cid = generate_completion_id()
    prefix, _, number = cid.partition("-")
    assert prefix == "chatcmpl"
    assert 0 <= int(number) < 1_000_000_000


def test_cors_headers():
    headers = cors_headers()
    assert headers["Access-Control-Allow-Origin"] == "*"
    assert headers["Access-Control-Allow-Methods"] == "GET,POST,PUT,PATCH,DELETE"
    assert headers["Access-Control-Allow-Headers"] == "Content-Type,Authorization"


def test_chunk_json_shape():
    value = build_chat_completion_chunk_json(CID, MODEL, CREATED, {"index": 0})
    assert value == {
        "id": CID,
        "object": "chat.completion.chunk",
        "created": CREATED,
        "model": MODEL,
        "choices": [{"index": 0}],
    }
    assert list(value) == ["id", "object", "created", "model", "choices"]


def test_text_frame_content():
    [event] = _events(create_text_frame(CID, MODEL, CREATED, "héllo"))
    value = json.loads(event)
    assert value["choices"][0]["delta"] == {"content": "héllo"}
    assert value["choices"][0]["finish_reason"] is None
    assert "héllo" in event


def test_text_frame_empty_sets_role():
    [event] = _events(create_text_frame(CID, MODEL, CREATED, ""))
    assert json.loads(event)["choices"][0]["delta"] == {"role": "assistant", "content": ""}


def test_tool_calls_frame():
    calls = [
        ToolCall("get_weather", {"city": "Paris"}, "call_1"),
        ToolCall("noop", {}, None),
    ]
    events = [json.loads(e) for e in _events(create_tool_calls_frame(CID, MODEL, CREATED, calls))]
    assert len(events) == 4
    head = events[0]["choices"][0]["delta"]
    assert head["role"] == "assistant"
    assert head["content"] is None
    assert head["tool_calls"][0] == {
        "index": 0,
        "id": "call_1",
        "type": "function",
        "function": {"name": "get_weather", "arguments": ""},
    }
    body = events[1]["choices"][0]["delta"]["tool_calls"][0]
    assert body["index"] == 0
    assert json.loads(body["function"]["arguments"]) == {"city": "Paris"}
    assert events[2]["choices"][0]["delta"]["tool_calls"][0]["index"] == 1
    assert events[2]["choices"][0]["delta"]["tool_calls"][0]["id"] is None


def test_tool_calls_frame_empty():
    assert create_tool_calls_frame(CID, MODEL, CREATED, []) == b""


@pytest.mark.parametrize("has_tools,reason", [(True, "tool_calls"), (False, "stop")])
def test_done_frame(has_tools, reason):
    frame = create_done_frame(CID, MODEL, CREATED, has_tools)
    assert frame.endswith(b"data: [DONE]\n\n")
    events = _events(frame)
    assert events[-1] == "[DONE]"
    choice = json.loads(events[0])["choices"][0]
    assert choice == {"index": 0, "delta": {}, "finish_reason": reason}


def test_non_stream_text():
    output = ChatCompletionsOutput(text="hi", input_tokens=3, output_tokens=4)
    body = json.loads(build_non_stream_body(CID, MODEL, CREATED, output))
    assert body["id"] == CID
    assert body["object"] == "chat.completion"
    assert body["choices"][0]["message"] == {"role": "assistant", "content": "hi"}
    assert body["choices"][0]["finish_reason"] == "stop"
    usage = body["usage"]
    assert usage["total_tokens"] == usage["prompt_tokens"] + usage["completion_tokens"]
    assert usage["prompt_tokens"] == 3


def test_non_stream_tool_calls_and_id():
    output = ChatCompletionsOutput(
        text="", tool_calls=[ToolCall("f", {"a": [1, 2]}, "c1")], id="resp-9"
    )
    body = json.loads(build_non_stream_body(CID, MODEL, CREATED, output))
    assert body["id"] == "resp-9"
    choice = body["choices"][0]
    assert choice["finish_reason"] == "tool_calls"
    assert choice["message"]["content"] is None
    call = choice["message"]["tool_calls"][0]
    assert call["id"] == "c1"
    assert call["function"]["name"] == "f"
    assert json.loads(call["function"]["arguments"]) == {"a": [1, 2]}
    assert body["usage"]["total_tokens"] == 0


def test_error_body():
    data = json.loads(error_body(ValueError("Not Found")))
    assert data == {"error": {"message": "Not Found", "type": "invalid_request_error"}}


def test_parse_tools():
    assert parse_tools(None) is None
    fn = {"name": "f", "parameters": {"type": "object"}}
    assert parse_tools([{"type": "function", "function": fn}]) == [fn]
    assert parse_tools([]) == []


@pytest.mark.parametrize(
    "tools",
    [
        [{"type": "function", "function": {"name": "f"}}, {"type": "other", "function": {}}],
        [{"type": "function", "function": {"name": "f"}}, {"type": "function"}],
        [{"type": "function", "function": {"name": "f"}}, "bad"],
    ],
)
def test_parse_tools_invalid(tools):
    with pytest.raises(ValueError, match=r"Failed to parse '\.tools\[1\]'"):
        parse_tools(tools)