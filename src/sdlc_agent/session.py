"""Per-feature persistence of the agent resumption token.

The token lives in ``.sdlc/features/<slug>/.agent-session`` under the project
root. Its contents are opaque here.
"""

from __future__ import annotations

from pathlib import Path

SESSION_FILENAME = ".agent-session"


def session_path(root: Path, feature: str) -> Path:
    return Path(root).resolve() / ".sdlc" / "features" / feature / SESSION_FILENAME


def load_session(root: Path, feature: str) -> str | None:
    path = session_path(root, feature)
    try:
        value = path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError):
        return None
    return value or None


def save_session(root: Path, feature: str, token: str) -> None:
    path = session_path(root, feature)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(token.strip(), encoding="utf-8")


def clear_session(root: Path, feature: str) -> None:
    session_path(root, feature).unlink(missing_ok=True)
