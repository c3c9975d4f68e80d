# aichat

Building blocks for an all-in-one LLM command-line tool, written in plain
Python with no third-party runtime dependencies.

## Install

```
pip install .
```

For running the test suite:

```
pip install ".[test]"
pytest
```

## What is inside

| Module | Purpose |
| --- | --- |
| `aichat.common` | Small helpers: timestamps, environment names, boolean parsing, token estimation, `<think>` tag stripping, code-block extraction, coloured and indented text, temp file names. |
| `aichat.crypto` | `sha256`, `hmac_sha256`, `hex_encode`, `encode_uri`, `base64_encode`, `base64_decode`. |
| `aichat.render_prompt` | A tiny template language for REPL prompts. |
| `aichat.abort_signal` | `AbortSignal`, a thread-safe Ctrl-C / Ctrl-D flag, plus `wait_abort_signal`. |
| `aichat.clipboard` | Copy text to the clipboard through the OSC 52 terminal escape sequence. |
| `aichat.command` | Shell detection, running external commands and document loaders, appending to shell history. |
| `aichat.variables` | Expands `{{__os__}}`, `{{__arch__}}`, `{{__shell__}}`, `{{__now__}}`, `{{__cwd__}}` and friends. |
| `aichat.paths` | Safe path joining, glob expansion (`dir/**/*.{md,txt}`), home-directory resolution. |
| `aichat.loader` | `LoadedDocument` and protocol-based document loaders. |
| `aichat.spinner` | A terminal spinner that can run alongside an abortable task. |
| `aichat.serve_frames` | OpenAI-compatible response bodies and server-sent-event frames. |
| `aichat.serve_messages` | Parsing of chat-completions, embeddings, rerank and RAG search requests. |

## Examples

Rendering a prompt template. `{var}` inserts a variable, `{?var ...}` keeps
its body when the variable is truthy and `{!var ...}` when it is not:

```python
from aichat.render_prompt import render_prompt

template = "{?session {session}{?role /}}{role}{?session )}{!session >}"
render_prompt(template, {"role": "coder"})                     # 'coder>'
render_prompt(template, {"session": "temp", "role": "coder"})  # 'temp/coder)'
```

Joining paths without escaping the base directory:

```python
from aichat.paths import safe_join_path, parse_glob

safe_join_path("/home/user/dir1", "files/file1")  # Path('/home/user/dir1/files/file1')
safe_join_path("/home/user/dir1", "../file1")     # None
parse_glob("dir/**/*.{md,txt}")                   # ('dir', ['md', 'txt'], False)
```

Building a streamed chat-completion frame:

```python
from aichat.serve_frames import create_text_frame, generate_completion_id

frame = create_text_frame(generate_completion_id(), "default", 0, "Hello")
# b'data: {"id": ..., "object": "chat.completion.chunk", ...}\n\n'
```

Parsing incoming chat messages, including tool calls and their results:

```python
from aichat.serve_messages import parse_messages, RequestError

try:
    messages = parse_messages([{"role": "user", "content": "hi"}])
except RequestError as err:
    print(err)
```