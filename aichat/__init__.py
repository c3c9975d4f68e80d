"""Building blocks for an LLM command-line tool and its OpenAI-compatible server."""

__version__ = "0.30.0"

__all__ = [
    "abort_signal",
    "clipboard",
    "command",
    "common",
    "crypto",
    "loader",
    "paths",
    "render_prompt",
    "serve_frames",
    "serve_messages",
    "spinner",
    "variables",
]