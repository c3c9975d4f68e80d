import dataclasses
import shlex
import sys

import pytest

from aichat.loader import (
    EXTENSION_METADATA,
    LoadedDocument,
    is_loader_protocol,
    load_protocol_path,
)

PY = sys.executable


def _cmd(*parts):
    return " ".join(shlex.quote(str(part)) for part in parts)


JSON_SCRIPT = """\
import json, sys
base = sys.argv[1]
docs = [
    {"path": "proto:" + base + "/a", "contents": "A"},
    {"path": base + "/b", "contents": "B", "metadata": {"kind": "note"}},
    {"path": "c", "contents": "C", "extra": 1},
]
sys.stdout.write(json.dumps(docs))
"""

TEXT_SCRIPT = """\
import sys
sys.stdout.write("got " + sys.argv[1])
"""


def test_is_loader_protocol():
    loaders = {"git": "git-loader $1"}
    assert is_loader_protocol(loaders, "git:repo") is True
    assert is_loader_protocol(loaders, "https://example.com") is False
    assert is_loader_protocol(loaders, "git") is False


def test_from_dict_round_trip():
    doc = LoadedDocument("a.md", "text", {"k": "v"})
    assert LoadedDocument.from_dict(dataclasses.asdict(doc)) == doc


def test_from_dict_keeps_extension_metadata():
    doc = LoadedDocument.from_dict(
        {"path": "p", "contents": "c", "metadata": {EXTENSION_METADATA: "md"}}
    )
    assert doc.metadata == {"__extension__": "md"}


def test_from_dict_metadata_defaults_empty():
    doc = LoadedDocument.from_dict({"path": "p", "contents": "c"})
    assert doc.metadata == {}


@pytest.mark.parametrize(
    "data",
    [
        [],
        {"path": "p"},
        {"contents": "c"},
        {"path": 1, "contents": "c"},
        {"path": "p", "contents": "c", "metadata": None},
        {"path": "p", "contents": "c", "metadata": {"k": 1}},
    ],
)
def test_from_dict_invalid(data):
    with pytest.raises(ValueError):
        LoadedDocument.from_dict(data)


def test_load_protocol_path_unknown():
    with pytest.raises(ValueError, match="No document loader for 'ftp:x'"):
        load_protocol_path({"git": "x"}, "ftp:x")


def test_load_protocol_path_json_list(tmp_path):
    script = tmp_path / "docs.py"
    script.write_text(JSON_SCRIPT, encoding="utf-8")
    loaders = {"proto": _cmd(PY, script, "$1")}
    docs = load_protocol_path(loaders, "proto:base")
    assert [doc.path for doc in docs] == ["proto:base/a", "proto:base/b", "proto:base/c"]
    assert [doc.contents for doc in docs] == ["A", "B", "C"]
    assert docs[1].metadata == {"kind": "note"}


def test_load_protocol_path_plain_output(tmp_path):
    script = tmp_path / "text.py"
    script.write_text(TEXT_SCRIPT, encoding="utf-8")
    loaders = {"proto": _cmd(PY, script, "$1")}
    docs = load_protocol_path(loaders, "proto:base")
    assert docs == [LoadedDocument("proto:base", "got base", {})]