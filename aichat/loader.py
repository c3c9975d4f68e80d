"""Loaded documents and protocol-based document loaders."""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .command import run_loader_command

EXTENSION_METADATA = "__extension__"


@dataclass
class LoadedDocument:
    """A document's path, its text and string metadata."""

    path: str
    contents: str
    metadata: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> LoadedDocument:
        """Build a document from its JSON form; raise ``ValueError`` if malformed."""
        if not isinstance(data, Mapping):
            raise ValueError("A document must be an object")
        path = data.get("path")
        contents = data.get("contents")
        if not isinstance(path, str):
            raise ValueError("A document needs a string 'path'")
        if not isinstance(contents, str):
            raise ValueError("A document needs a string 'contents'")
        metadata = data.get("metadata", {})
        if not isinstance(metadata, Mapping) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in metadata.items()
        ):
            raise ValueError("Document 'metadata' must map strings to strings")
        return cls(path, contents, dict(metadata))


def is_loader_protocol(loaders: Mapping[str, str], path: str) -> bool:
    """Whether ``path`` starts with ``<protocol>:`` for a configured loader."""
    protocol, sep, _ = path.partition(":")
    return bool(sep) and protocol in loaders


def _parse_documents(contents: str) -> list[LoadedDocument]:
    data = json.loads(contents)
    if not isinstance(data, list):
        raise ValueError("Expected a list of documents")
    return [LoadedDocument.from_dict(item) for item in data]


def load_protocol_path(loaders: Mapping[str, str], path: str) -> list[LoadedDocument]:
    """Load ``<protocol>:<path>`` with the protocol's loader command.

    A loader may print a JSON list of documents; anything else becomes a
    single document holding the output.
    """
    protocol, sep, new_path = path.partition(":")
    loader_command = loaders.get(protocol) if sep else None
    if loader_command is None:
        raise ValueError(f"No document loader for '{path}'")
    contents = run_loader_command(new_path, protocol, loader_command)
    try:
        documents = _parse_documents(contents)
    except ValueError:
        return [LoadedDocument(path, contents)]

    def fix_path(doc: LoadedDocument) -> LoadedDocument:
        if doc.path.startswith(path):
            return doc
        if doc.path.startswith(new_path):
            return dataclasses.replace(doc, path=f"{protocol}:{doc.path}")
        return dataclasses.replace(doc, path=f"{path}/{doc.path}")

    return [fix_path(doc) for doc in documents]