import json
import re

import pytest

from brainstormer.schemas import Artifact, Message
from brainstormer.session_store import SessionStore, create_empty_session


def _session_with_chat(title="Pet app"):
    s = create_empty_session(title)
    s.messages.append(Message(role="user", text="idea"))
    s.messages.append(Message(role="assistant", text="reply"))
    return s


def test_create_empty_session_defaults():
    s = create_empty_session()
    assert s.title == "Untitled"
    assert s.stage == "concept"
    assert s.artifacts == [] and s.experiments == [] and s.competitors == []
    assert create_empty_session().id != s.id


def test_save_writes_json_and_markdown(tmp_path):
    store = SessionStore(tmp_path)
    s = _session_with_chat()
    json_path, md_path = store.save(s)
    assert json_path == tmp_path / "sessions" / f"{s.id}.json"
    assert md_path.exists()
    data = json.loads(json_path.read_text(encoding="utf-8"))
    assert data["title"] == "Pet app"
    assert data["createdAt"] == s.created_at
    assert [m["role"] for m in data["messages"]] == ["user", "assistant"]
    assert not list((tmp_path / "sessions").glob("*.tmp"))


def test_markdown_layout():
    s = _session_with_chat()
    md = SessionStore(".").to_markdown(s)
    assert md.splitlines()[:4] == ["# Brainstorm: Pet app", "", "Stage: concept", ""]
    assert "## You\n\nidea\n" in md
    assert "## Assistant\n\nreply\n" in md
    assert "## Artifacts" not in md


def test_markdown_falls_back_to_id_without_title():
    s = create_empty_session()
    s.title = ""
    assert SessionStore(".").to_markdown(s).startswith(f"# Brainstorm: {s.id}")


def test_markdown_artifacts_section():
    s = _session_with_chat()
    s.artifacts.append(Artifact(type="one-pager", data={"problem": "p"}, summary="raw text", created_at="2024-05-01T10:00:00.000Z"))
    s.artifacts.append(Artifact(type="gtm-plan", data=None))
    md = SessionStore(".").to_markdown(s)
    assert "---\n\n## Artifacts\n" in md
    assert re.search(r"### one-pager \(\d{4}-\d\d-\d\d \d\d:\d\d:\d\d\)", md)
    assert "\nraw text\n" in md
    assert '```json\n{\n  "problem": "p"\n}\n```' in md
    assert "### gtm-plan (" in md


def test_load_round_trip(tmp_path):
    store = SessionStore(tmp_path)
    s = _session_with_chat()
    s.stage = "pitch"
    store.save(s)
    loaded = store.load(s.id)
    assert loaded.id == s.id
    assert loaded.stage == "pitch"
    assert loaded.messages[1].text == "reply"


def test_load_missing_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        SessionStore(tmp_path).load("nope")


def test_load_rejects_path_like_ids(tmp_path):
    with pytest.raises(ValueError):
        SessionStore(tmp_path).load("../secret")


def test_list_sorted_newest_first_and_skips_bad_files(tmp_path):
    store = SessionStore(tmp_path)
    old = create_empty_session("old")
    old.created_at = "2023-01-01T00:00:00.000Z"
    new = create_empty_session("new")
    new.created_at = "2025-01-01T00:00:00.000Z"
    store.save(old)
    store.save(new)
    (tmp_path / "sessions" / "broken.json").write_text("{not json", encoding="utf-8")
    (tmp_path / "sessions" / "undated.json").write_text(json.dumps({"id": "undated"}), encoding="utf-8")
    titles = [s.title for s in store.list()]
    ids = [s.id for s in store.list()]
    assert titles[:2] == ["new", "old"]
    assert ids[-1] == "undated"
    assert "broken" not in ids


def test_list_empty_creates_directory(tmp_path):
    assert SessionStore(tmp_path).list() == []
    assert (tmp_path / "sessions").is_dir()


def test_delete(tmp_path):
    store = SessionStore(tmp_path)
    s = create_empty_session("gone")
    store.save(s)
    assert store.delete(s.id) is True
    assert not (tmp_path / "sessions" / f"{s.id}.md").exists()
    assert store.delete(s.id) is False


def test_markdown_renders_empty_artifact_data():
    s = create_empty_session("Idea")
    s.artifacts.append(Artifact(type="one-pager", data={}))
    assert "```json\n{}\n```" in SessionStore(".").to_markdown(s)


def test_load_artifact_with_non_object_data(tmp_path):
    raw = {
        "id": "legacy",
        "title": "Old session",
        "createdAt": "2024-05-01T10:00:00.000Z",
        "stage": "concept",
        "messages": [],
        "ideas": [],
        "artifacts": [
            {"id": "a1", "type": "one-pager", "createdAt": "2024-05-01T10:05:00.000Z", "source": "Local Brainstormer", "data": ["problem", "audience"]},
            {"id": "a2", "type": "gtm-plan", "createdAt": "2024-05-01T10:06:00.000Z", "source": "Local Brainstormer", "data": "plain text"},
        ],
        "experiments": [],
        "competitors": [],
        "scoring": None,
    }
    (tmp_path / "sessions").mkdir()
    (tmp_path / "sessions" / "legacy.json").write_text(json.dumps(raw), encoding="utf-8")
    store = SessionStore(tmp_path)
    loaded = store.load("legacy")
    assert loaded.artifacts[0].data == ["problem", "audience"]
    assert loaded.artifacts[1].data == "plain text"
    md = store.to_markdown(loaded)
    assert '```json\n[\n  "problem",\n  "audience"\n]\n```' in md
    assert [s.id for s in store.list()] == ["legacy"]
