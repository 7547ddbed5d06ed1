from pathlib import Path

from sdlc_agent.session import clear_session, load_session, save_session, session_path


def test_session_roundtrip(tmp_path: Path) -> None:
    save_session(tmp_path, "auth-login", "tok-123")

    assert load_session(tmp_path, "auth-login") == "tok-123"
    assert session_path(tmp_path, "auth-login") == (
        tmp_path.resolve() / ".sdlc" / "features" / "auth-login" / ".agent-session"
    )

    clear_session(tmp_path, "auth-login")

    assert load_session(tmp_path, "auth-login") is None


def test_clear_unsaved_session_is_noop(tmp_path: Path) -> None:
    clear_session(tmp_path, "never-saved")

    assert load_session(tmp_path, "never-saved") is None


def test_save_overwrites_previous_token(tmp_path: Path) -> None:
    save_session(tmp_path, "feat", "first")
    save_session(tmp_path, "feat", "second\n")

    assert load_session(tmp_path, "feat") == "second"


def test_empty_or_unreadable_session_is_absent(tmp_path: Path) -> None:
    path = session_path(tmp_path, "feat")
    path.parent.mkdir(parents=True)
    path.write_text("  \n", encoding="utf-8")

    assert load_session(tmp_path, "feat") is None

    path.unlink()
    path.mkdir()

    assert load_session(tmp_path, "feat") is None
