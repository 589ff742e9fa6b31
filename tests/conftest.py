"""Shared fixtures: small ChatGPT-style exports."""

import json
import zipfile
from pathlib import Path

import pytest


def make_node(node_id, role, text, create_time=None):
    message = {"author": {"role": role}, "content": {"content_type": "text", "parts": [text]}}
    if create_time is not None:
        message["create_time"] = create_time
    return {"id": node_id, "message": message}


def make_conversation(conv_id, title, messages, **extra):
    """Build a raw conversation from (role, text, create_time) tuples."""
    mapping = {"root": {"id": "root", "message": None}}
    for i, (role, text, create_time) in enumerate(messages):
        node_id = f"{conv_id}-n{i}"
        mapping[node_id] = make_node(node_id, role, text, create_time)
    return {"id": conv_id, "title": title, "mapping": mapping, **extra}


@pytest.fixture
def demo_document() -> dict:
    return {
        "conversations": [
            {
                "id": "c1",
                "title": "Demo",
                "mapping": {
                    "n1": {
                        "id": "n1",
                        "message": {
                            "author": {"role": "user"},
                            "create_time": 10,
                            "content": {"parts": ["Hello world"]},
                        },
                    },
                    "n2": {
                        "id": "n2",
                        "message": {
                            "author": {"role": "assistant"},
                            "create_time": 5,
                            "content": {"parts": ["Hi there"]},
                        },
                    },
                },
            }
        ]
    }


@pytest.fixture
def export_data() -> list[dict]:
    """A three-conversation export in the top-level array shape."""
    return [
        make_conversation(
            "conv-python",
            "Python generators",
            [
                ("user", "How do generators work in Python?", 1_700_000_000),
                ("assistant", "A generator yields values lazily. Use the yield keyword.", 1_700_000_060),
                ("user", "And async generators?", 1_700_000_120),
            ],
            create_time=1_700_000_000,
            update_time=1_700_000_120,
        ),
        make_conversation(
            "conv-docker",
            "Docker networking",
            [
                ("user", "Why can't my containers talk to each other?", 1_710_000_000),
                ("assistant", "Put both containers on the same bridge network.", 1_710_000_030),
            ],
            create_time=1_710_000_000,
            update_time=1_710_000_030,
            is_archived=True,
        ),
        make_conversation(
            "conv-empty",
            "Empty chat",
            [],
            create_time=1_690_000_000,
        ),
    ]


@pytest.fixture
def export_file(tmp_path: Path, export_data) -> Path:
    path = tmp_path / "conversations.json"
    path.write_text(json.dumps(export_data), encoding="utf-8")
    return path


@pytest.fixture
def export_zip(tmp_path: Path, export_data) -> Path:
    path = tmp_path / "chatgpt-export.zip"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("conversations.json", json.dumps(export_data))
        zf.writestr("user.json", "{}")
    return path
