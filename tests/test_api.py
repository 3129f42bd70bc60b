"""Tests for RETRO BEATS API — health, library, session and WebSocket endpoints."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from conftest import QueryableEngine, SONG_TRACKS, write_midi
from retrobeats.api import server
from retrobeats.config import settings
from retrobeats.song import LoadedSong


def _fake_factory(port_name: str | None = None):
    def factory(song: LoadedSong) -> QueryableEngine:
        return QueryableEngine(duration=song.duration)

    return factory


@pytest.fixture
def library(tmp_path: Path) -> Path:
    write_midi(tmp_path / "super_mario_bros_3.mid", SONG_TRACKS)
    return tmp_path


@pytest.fixture
def client(library: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    """App client with a temp song directory and an in-memory engine."""
    monkeypatch.setattr(server, "midi_out_factory", _fake_factory)
    monkeypatch.setattr(settings, "midi_dir", library)
    monkeypatch.setattr(settings, "upload_dir", library / "uploads")
    with TestClient(server.app) as c:
        yield c


# ── Health & Version ─────────────────────────────────────


def test_health_check(client: TestClient) -> None:
    """Health endpoint returns OK."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["service"] == "retrobeats"


def test_version() -> None:
    """Package has correct version."""
    from retrobeats import __version__

    assert __version__ == "0.1.0"


def test_settings_defaults() -> None:
    """Settings load with correct defaults."""
    from retrobeats.config import Settings

    s = Settings()
    assert s.port == 8000
    assert s.env == "development"
    assert s.reveal_tokens == 3
    assert s.load_max_attempts == 50


def test_settings_env_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    """RETROBEATS_* environment variables override defaults."""
    from retrobeats.config import Settings

    monkeypatch.setenv("RETROBEATS_REVEAL_TOKENS", "7")
    assert Settings().reveal_tokens == 7


def test_api_info(client: TestClient) -> None:
    """Info endpoint returns available endpoints."""
    response = client.get("/api/info")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "RETRO BEATS"
    assert "session_reveal" in data["endpoints"]


# ── Library ──────────────────────────────────────────────


def test_list_midi_files(client: TestClient, library: Path) -> None:
    """Only .mid/.midi files are listed, sorted by name."""
    (library / "notes.txt").write_text("not a song")
    (library / "Zelda.MIDI").write_bytes(b"")

    response = client.get("/api/midi-files")

    assert response.status_code == 200
    assert response.json() == ["Zelda.MIDI", "super_mario_bros_3.mid"]


def test_list_midi_files_missing_dir(client: TestClient, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """A missing song directory is an empty library."""
    monkeypatch.setattr(server.app.state.session, "library_dir", tmp_path / "gone")
    response = client.get("/api/midi-files")
    assert response.status_code == 200
    assert response.json() == []


def test_list_midi_files_unreadable(client: TestClient, monkeypatch: pytest.MonkeyPatch, library: Path) -> None:
    """A song directory that cannot be listed is a 500."""
    monkeypatch.setattr(server.app.state.session, "library_dir", library / "super_mario_bros_3.mid")
    response = client.get("/api/midi-files")
    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to read MIDI files"


def test_listing_and_load_share_library(client: TestClient, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Every listed file can be loaded by name."""
    other = tmp_path / "other"
    other.mkdir()
    write_midi(other / "tetris.mid", ["Melody", "Bass"])
    monkeypatch.setattr(server.app.state.session, "library_dir", other)

    assert client.get("/api/midi-files").json() == ["tetris.mid"]
    response = client.post("/api/session/load", json={"filename": "tetris.mid"})
    assert response.status_code == 200


# ── Session ──────────────────────────────────────────────


def test_state_before_load(client: TestClient) -> None:
    """Without a song the state is empty."""
    data = client.get("/api/session/state").json()
    assert data["loaded"] is False
    assert data["tracks"] == []


def test_load_unknown_song(client: TestClient) -> None:
    """Loading a file that is not in the library is a 404."""
    response = client.post("/api/session/load", json={"filename": "nope.mid"})
    assert response.status_code == 404
    assert response.json()["detail"] == "Song nope.mid not found"


def test_load_broken_song(client: TestClient, library: Path) -> None:
    """An unreadable MIDI file is a 422."""
    (library / "broken.mid").write_bytes(b"this is not a midi file")
    response = client.post("/api/session/load", json={"filename": "broken.mid"})
    assert response.status_code == 422


def test_load_random_from_empty_library(client: TestClient, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """A random load from an empty library is a 404."""
    empty = tmp_path / "empty"
    empty.mkdir()
    monkeypatch.setattr(server.app.state.session, "library_dir", empty)

    response = client.post("/api/session/load", json={})

    assert response.status_code == 404


def test_upload_song(client: TestClient, tmp_path: Path) -> None:
    """A MIDI file from the user's disk loads with a single audible track."""
    song = write_midi(tmp_path / "Zelda Overworld.mid", ["Lead", "Bass", "Strings"])

    with song.open("rb") as fh:
        response = client.post(
            "/api/session/upload",
            files={"file": ("Zelda Overworld.mid", fh, "audio/midi")},
        )

    assert response.status_code == 200
    data = response.json()
    assert data["loaded"] is True
    assert [t["id"] for t in data["tracks"] if not t["is_muted"]] == [1]

    data = client.post("/api/session/guess", json={"guess": "zelda"}).json()
    assert data["result"]["matched"] is True
    assert data["song"] == "Zelda Overworld.mid"


def test_upload_rejects_other_files(client: TestClient) -> None:
    """Only .mid and .midi uploads are accepted."""
    response = client.post(
        "/api/session/upload",
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )
    assert response.status_code == 422
    assert client.get("/api/session/state").json()["loaded"] is False


def test_upload_broken_midi(client: TestClient) -> None:
    """An unreadable upload maps to the song-load error status."""
    response = client.post(
        "/api/session/upload",
        files={"file": ("broken.midi", b"not midi", "audio/midi")},
    )
    assert response.status_code == 422


def test_reveal_without_song(client: TestClient) -> None:
    """Revealing with nothing loaded is reported, not an error."""
    response = client.post("/api/session/reveal")
    assert response.status_code == 200
    result = response.json()["result"]
    assert result["allowed"] is False
    assert result["reason"] == "no_song"


def test_full_round(client: TestClient) -> None:
    """Load, reveal, toggle, guess wrong, then guess right."""
    response = client.post("/api/session/load", json={"filename": "super_mario_bros_3.mid"})
    assert response.status_code == 200
    data = response.json()
    assert data["loaded"] is True
    assert data["song"] is None
    assert [t["is_muted"] for t in data["tracks"]] == [True, True, False, True]

    data = client.post("/api/session/reveal").json()
    assert data["result"]["allowed"] is True
    assert data["result"]["track_id"] == 1
    assert data["tokens"] == 2

    data = client.post("/api/session/tracks/0/toggle").json()
    assert data["tracks"][0]["is_muted"] is False
    assert data["state"] == "user_modified"

    data = client.post("/api/session/guess", json={"guess": "zzzz"}).json()
    assert data["result"]["matched"] is False
    assert data["solved"] is False

    data = client.post("/api/session/guess", json={"guess": "super mario"}).json()
    assert data["result"]["matched"] is True
    assert data["song"] == "super_mario_bros_3.mid"
    assert all(not t["is_muted"] for t in data["tracks"])


def test_transport_and_restart(client: TestClient) -> None:
    """Play, pause, toggle and restart drive the engine."""
    client.post("/api/session/load", json={"filename": "super_mario_bros_3.mid"})

    assert client.post("/api/session/play").json()["is_playing"] is True
    assert client.post("/api/session/pause").json()["is_playing"] is False
    assert client.post("/api/session/toggle").json()["is_playing"] is True

    client.post("/api/session/mute-all")
    data = client.post("/api/session/restart").json()
    assert data["allowed"] is True
    assert data["state"] == "initialized"
    assert data["revealed_count"] == 1


def test_guess_requires_body(client: TestClient) -> None:
    """A guess without text is rejected by validation."""
    response = client.post("/api/session/guess", json={})
    assert response.status_code == 422


# ── WebSocket ────────────────────────────────────────────


def test_websocket_state_and_ping(client: TestClient) -> None:
    """WebSocket sends state on connect and answers ping and state."""
    with client.websocket_connect("/ws") as ws:
        first = ws.receive_json()
        assert first["type"] == "state"
        assert first["loaded"] is False

        ws.send_json({"action": "ping"})
        assert ws.receive_json() == {"type": "pong"}

        ws.send_json({"action": "state"})
        assert ws.receive_json()["type"] == "state"


def test_websocket_malformed_frame(client: TestClient) -> None:
    """A frame that is not a JSON object gets an error reply; the socket stays usable."""
    with client.websocket_connect("/ws") as ws:
        ws.receive_json()

        ws.send_text("{not json")
        assert ws.receive_json() == {"type": "error", "detail": "Malformed message"}

        ws.send_text("[1, 2]")
        assert ws.receive_json()["type"] == "error"

        ws.send_json({"action": "ping"})
        assert ws.receive_json() == {"type": "pong"}
