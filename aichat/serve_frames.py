"""Response bodies and stream frames of the OpenAI-compatible serve API."""

from __future__ import annotations

import ipaddress
import json
import re
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

DEFAULT_MODEL_NAME = "default"
DEFAULT_SERVE_PORT = 8000

_PORT_RE = re.compile(r"\+?[0-9]+")


@dataclass
class ToolCall:
    """A function call requested by the model."""

    name: str
    arguments: Any
    id: str | None = None


@dataclass
class ChatCompletionsOutput:
    """The result of a non-streaming chat completion."""

    text: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    id: str | None = None
    input_tokens: int | None = None
    output_tokens: int | None = None


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _parse_port(addr: str) -> int | None:
    if not _PORT_RE.fullmatch(addr):
        return None
    port = int(addr)
    return port if port <= 0xFFFF else None


def _parse_ip(addr: str) -> str | None:
    if "%" in addr:
        return None
    try:
        return str(ipaddress.ip_address(addr))
    except ValueError:
        return None


def resolve_serve_addr(addr: str | None, default: str) -> str:
    """Turn a port, an IP address or a full address into ``host:port``.

    A bare port listens on 127.0.0.1, a bare IP on port 8000; anything else
    is used as given, and ``None`` falls back to ``default``.
    """
    if addr is None:
        return default
    port = _parse_port(addr)
    if port is not None:
        return f"127.0.0.1:{port}"
    ip = _parse_ip(addr)
    if ip is not None:
        return f"{ip}:{DEFAULT_SERVE_PORT}"
    return addr


def generate_completion_id() -> str:
    """An id of the form ``chatcmpl-<nanoseconds within the current second>``."""
    return f"chatcmpl-{time.time_ns() % 1_000_000_000}"


def cors_headers() -> dict[str, str]:
    """Headers that allow cross-origin use of the API."""
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "GET,POST,PUT,PATCH,DELETE",
        "Access-Control-Allow-Headers": "Content-Type,Authorization",
    }


def build_chat_completion_chunk_json(
    completion_id: str, model: str, created: int, choice: Mapping[str, Any]
) -> dict[str, Any]:
    return {
        "id": completion_id,
        "object": "chat.completion.chunk",
        "created": created,
        "model": model,
        "choices": [choice],
    }


def _sse(value: Any) -> str:
    return f"data: {_dumps(value)}\n\n"


def create_text_frame(completion_id: str, model: str, created: int, content: str) -> bytes:
    """A stream event carrying a piece of text."""
    if content:
        delta: dict[str, Any] = {"content": content}
    else:
        delta = {"role": "assistant", "content": content}
    choice = {"index": 0, "delta": delta, "finish_reason": None}
    value = build_chat_completion_chunk_json(completion_id, model, created, choice)
    return _sse(value).encode("utf-8")


def create_tool_calls_frame(
    completion_id: str, model: str, created: int, tool_calls: Sequence[ToolCall]
) -> bytes:
    """Two stream events per tool call: its name, then its arguments."""
    events: list[str] = []
    for i, call in enumerate(tool_calls):
        head = {
            "index": 0,
            "delta": {
                "role": "assistant",
                "content": None,
                "tool_calls": [
                    {
                        "index": i,
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.name, "arguments": ""},
                    }
                ],
            },
            "finish_reason": None,
        }
        body = {
            "index": 0,
            "delta": {
                "tool_calls": [
                    {"index": i, "function": {"arguments": _dumps(call.arguments)}}
                ]
            },
            "finish_reason": None,
        }
        for choice in (head, body):
            events.append(
                _sse(build_chat_completion_chunk_json(completion_id, model, created, choice))
            )
    return "".join(events).encode("utf-8")


def create_done_frame(
    completion_id: str, model: str, created: int, has_tool_calls: bool
) -> bytes:
    """The final stream event followed by the ``[DONE]`` marker."""
    choice = {
        "index": 0,
        "delta": {},
        "finish_reason": "tool_calls" if has_tool_calls else "stop",
    }
    value = build_chat_completion_chunk_json(completion_id, model, created, choice)
    return f"{_sse(value)}data: [DONE]\n\n".encode("utf-8")


def build_non_stream_body(
    completion_id: str, model: str, created: int, output: ChatCompletionsOutput
) -> bytes:
    """The JSON body of a non-streaming chat completion response."""
    response_id = output.id if output.id is not None else completion_id
    input_tokens = output.input_tokens or 0
    output_tokens = output.output_tokens or 0
    if not output.tool_calls:
        choice: dict[str, Any] = {
            "index": 0,
            "message": {"role": "assistant", "content": output.text},
            "logprobs": None,
            "finish_reason": "stop",
        }
    else:
        choice = {
            "index": 0,
            "message": {
                "role": "assistant",
                "content": output.text or None,
                "tool_calls": [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {
                            "name": call.name,
                            "arguments": _dumps(call.arguments),
                        },
                    }
                    for call in output.tool_calls
                ],
            },
            "logprobs": None,
            "finish_reason": "tool_calls",
        }
    body = {
        "id": response_id,
        "object": "chat.completion",
        "created": created,
        "model": model,
        "choices": [choice],
        "usage": {
            "prompt_tokens": input_tokens,
            "completion_tokens": output_tokens,
            "total_tokens": input_tokens + output_tokens,
        },
    }
    return _dumps(body).encode("utf-8")


def error_body(err: object) -> bytes:
    """The JSON body that reports ``err`` to the client."""
    data = {"error": {"message": str(err), "type": "invalid_request_error"}}
    return _dumps(data).encode("utf-8")


def parse_tools(tools: Sequence[Any] | None) -> list[dict[str, Any]] | None:
    """Pull the function declarations out of a request's ``tools`` list."""
    if tools is None:
        return None
    functions: list[dict[str, Any]] = []
    for i, tool in enumerate(tools):
        if (
            isinstance(tool, Mapping)
            and tool.get("type") == "function"
            and isinstance(tool.get("function"), Mapping)
        ):
            functions.append(dict(tool["function"]))
        else:
            raise ValueError(f"Failed to parse '.tools[{i}]'")
    return functions