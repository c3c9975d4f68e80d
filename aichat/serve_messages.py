"""Request bodies and chat messages accepted by the serve API."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from .serve_frames import ToolCall


class RequestError(ValueError):
    """Raised when a request body or one of its messages is malformed."""


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class ToolResult:
    """A tool call together with the value the tool returned."""

    call: ToolCall
    output: Any


@dataclass
class MessageContentToolCalls:
    """Assistant content made of tool calls, their results and optional text."""

    tool_results: list[ToolResult] = field(default_factory=list)
    text: str = ""


MessageContent = Union[str, list, MessageContentToolCalls]


@dataclass
class Message:
    role: MessageRole
    content: MessageContent


def _content_text(content: str | list[Any]) -> str:
    if isinstance(content, str):
        return content
    texts = [
        part["text"]
        for part in content
        if part.get("type") == "text" and isinstance(part.get("text"), str)
    ]
    return "\n\n".join(texts)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON constant {name}")


def _loads_strict(text: str) -> Any:
    return json.loads(text, parse_constant=_reject_constant)


def _parse_content(message: Mapping[str, Any], err: RequestError) -> str | list[Any]:
    if "content" not in message:
        return ""
    value = message["content"]
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        if not all(isinstance(part, Mapping) for part in value):
            raise err
        return [dict(part) for part in value]
    raise err


@dataclass
class _PendingToolCalls:
    text: str
    calls: list[tuple[str | None, str, Any]]
    values: list[tuple[Any, str | None]] = field(default_factory=list)


def _parse_tool_calls(tool_calls: list[Any], err: RequestError) -> list[tuple[str | None, str, Any]]:
    calls: list[tuple[str | None, str, Any]] = []
    for tool_call in tool_calls:
        if not isinstance(tool_call, Mapping):
            raise err
        call_id = tool_call.get("id")
        function = tool_call.get("function")
        if not isinstance(function, Mapping):
            raise err
        name = function.get("name")
        arguments = function.get("arguments")
        if not isinstance(name, str) or not isinstance(arguments, str):
            raise err
        try:
            parsed = _loads_strict(arguments)
        except ValueError:
            raise err from None
        calls.append((call_id if isinstance(call_id, str) else None, name, parsed))
    return calls


def parse_messages(messages: Sequence[Any]) -> list[Message]:
    """Turn OpenAI-style chat messages into ``Message`` objects.

    An assistant message with ``tool_calls`` must be followed by one ``tool``
    message per call, in the same order and with matching ids; together they
    become a single assistant message holding the tool results.
    """
    output: list[Message] = []
    pending: _PendingToolCalls | None = None
    for i, message in enumerate(messages):
        err = RequestError(f"Failed to parse '.messages[{i}]'")
        if not isinstance(message, Mapping):
            raise err
        role = message.get("role")
        if not isinstance(role, str):
            raise err
        content = _parse_content(message, err)

        if role in ("system", "user"):
            output.append(Message(MessageRole(role), content))
        elif role == "assistant":
            tool_calls = message.get("tool_calls")
            if isinstance(tool_calls, list):
                if pending is not None:
                    raise err
                pending = _PendingToolCalls(
                    _content_text(content), _parse_tool_calls(tool_calls, err)
                )
            else:
                output.append(Message(MessageRole.ASSISTANT, content))
        elif role == "tool":
            if pending is None:
                raise err
            tool_call_id = message.get("tool_call_id")
            if not isinstance(tool_call_id, str):
                tool_call_id = None
            text = _content_text(content)
            try:
                value = _loads_strict(text)
            except ValueError:
                value = text
            pending.values.append((value, tool_call_id))
            if len(pending.calls) == len(pending.values):
                results: list[ToolResult] = []
                for (call_id, name, arguments), (value, result_id) in zip(
                    pending.calls, pending.values
                ):
                    if call_id != result_id:
                        raise err
                    results.append(ToolResult(ToolCall(name, arguments, call_id), value))
                output.append(
                    Message(
                        MessageRole.ASSISTANT,
                        MessageContentToolCalls(results, pending.text),
                    )
                )
                pending = None
        else:
            raise err

    if pending is not None:
        raise RequestError("Invalid messages")
    return output


def _body(data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise RequestError("Invalid request body, expected an object")
    return data


def _required(data: Mapping[str, Any], key: str) -> Any:
    if key not in data:
        raise RequestError(f"Invalid request body, missing field `{key}`")
    return data[key]


def _string(data: Mapping[str, Any], key: str) -> str:
    value = _required(data, key)
    if not isinstance(value, str):
        raise RequestError(f"Invalid request body, `{key}` must be a string")
    return value


def _string_list(value: Any, key: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise RequestError(f"Invalid request body, `{key}` must be a list of strings")
    return list(value)


def _optional_float(data: Mapping[str, Any], key: str) -> float | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RequestError(f"Invalid request body, `{key}` must be a number")
    return float(value)


def _optional_int(data: Mapping[str, Any], key: str, *, minimum: int | None = None) -> int | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise RequestError(f"Invalid request body, `{key}` must be an integer")
    if minimum is not None and value < minimum:
        raise RequestError(f"Invalid request body, `{key}` must be at least {minimum}")
    return value


@dataclass
class ChatCompletionsRequest:
    model: str
    messages: list[Any]
    temperature: float | None = None
    top_p: float | None = None
    max_tokens: int | None = None
    stream: bool = False
    tools: list[Any] | None = None

    @classmethod
    def from_dict(cls, data: Any) -> ChatCompletionsRequest:
        body = _body(data)
        model = _string(body, "model")
        messages = _required(body, "messages")
        if not isinstance(messages, list):
            raise RequestError("Invalid request body, `messages` must be a list")
        stream = body.get("stream", False)
        if not isinstance(stream, bool):
            raise RequestError("Invalid request body, `stream` must be a boolean")
        tools = body.get("tools")
        if tools is not None and not isinstance(tools, list):
            raise RequestError("Invalid request body, `tools` must be a list")
        return cls(
            model=model,
            messages=list(messages),
            temperature=_optional_float(body, "temperature"),
            top_p=_optional_float(body, "top_p"),
            max_tokens=_optional_int(body, "max_tokens"),
            stream=stream,
            tools=list(tools) if tools is not None else None,
        )


@dataclass
class EmbeddingsRequest:
    """An embeddings request; a single input string becomes a one-item list."""

    texts: list[str]
    model: str

    @classmethod
    def from_dict(cls, data: Any) -> EmbeddingsRequest:
        body = _body(data)
        value = _required(body, "input")
        texts = [value] if isinstance(value, str) else _string_list(value, "input")
        return cls(texts=texts, model=_string(body, "model"))


@dataclass
class RerankRequest:
    documents: list[str]
    query: str
    model: str
    top_n: int | None = None

    @property
    def resolved_top_n(self) -> int:
        """``top_n``, or the number of documents when it was not given."""
        return self.top_n if self.top_n is not None else len(self.documents)

    @classmethod
    def from_dict(cls, data: Any) -> RerankRequest:
        body = _body(data)
        return cls(
            documents=_string_list(_required(body, "documents"), "documents"),
            query=_string(body, "query"),
            model=_string(body, "model"),
            top_n=_optional_int(body, "top_n", minimum=0),
        )


@dataclass
class SearchRagRequest:
    name: str
    input: str

    @classmethod
    def from_dict(cls, data: Any) -> SearchRagRequest:
        body = _body(data)
        return cls(name=_string(body, "name"), input=_string(body, "input"))