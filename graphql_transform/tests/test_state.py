"""
Tests for project state persistence and the atomic writer.
"""

from __future__ import annotations

import json

import pytest

from graphql_transform.errors import StateFileError
from graphql_transform.lifecycle import AtomicWriter, ProjectState, build_api_project, read_project_state, schema_hash, write_project_state
from graphql_transform.lifecycle.state import STATE_FILE_NAME
from graphql_transform.transformers import default_transformers


@pytest.fixture
def state():
    artifact = build_api_project("type Todo @model { id: ID! name: String! }", None, default_transformers())
    first = ProjectState.from_artifact(artifact)
    second_artifact = build_api_project("type Todo @model { id: ID! name: String! done: Boolean }", None, default_transformers())
    return ProjectState.from_artifact(second_artifact, previous=first)


class TestProjectState:
    def test_from_artifact(self, state):
        assert state.schema_hash == schema_hash(state.artifact.schema)
        assert len(state.schema_hash) == 64
        assert state.timestamp
        assert state.has_backup
        assert not state.previous.has_backup

    def test_dict_round_trip(self, state):
        assert ProjectState.from_dict(state.to_dict()) == state

    def test_json_round_trip(self, state):
        document = json.loads(json.dumps(state.to_dict()))
        assert ProjectState.from_dict(document) == state


class TestStateFiles:
    def test_write_and_read_in_project_dir(self, tmp_path, state):
        written = write_project_state(tmp_path, state)

        assert written == tmp_path / STATE_FILE_NAME
        assert read_project_state(tmp_path) == state

    def test_write_and_read_explicit_file(self, tmp_path, state):
        path = tmp_path / "deploy" / "state.json"
        write_project_state(path, state)
        assert read_project_state(path) == state

    def test_missing_state(self, tmp_path):
        assert read_project_state(tmp_path) is None

    def test_invalid_json(self, tmp_path):
        (tmp_path / STATE_FILE_NAME).write_text("{not json")
        with pytest.raises(StateFileError):
            read_project_state(tmp_path)

    def test_malformed_state(self, tmp_path):
        (tmp_path / STATE_FILE_NAME).write_text(json.dumps({"Artifact": {"Stacks": {"root": {"Resources": {"A": {}}}}}}))
        with pytest.raises(StateFileError):
            read_project_state(tmp_path)


class TestAtomicWriter:
    def test_write_creates_parents(self, tmp_path):
        target = tmp_path / "a" / "b" / "out.graphql"
        AtomicWriter().write(target, "type A { id: ID! }\n")
        assert target.read_text() == "type A { id: ID! }\n"

    def test_invalid_json_is_not_written(self, tmp_path):
        target = tmp_path / "state.json"
        target.write_text('{"old": true}')

        with pytest.raises(StateFileError):
            AtomicWriter().write(target, "[1, 2")

        assert json.loads(target.read_text()) == {"old": True}
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    def test_json_must_be_an_object(self, tmp_path):
        with pytest.raises(StateFileError):
            AtomicWriter().write(tmp_path / "state.json", "[]")

    def test_validation_can_be_disabled(self, tmp_path):
        AtomicWriter().write(tmp_path / "state.json", "[]", validate=False)
        assert (tmp_path / "state.json").read_text() == "[]"

    def test_custom_validator(self, tmp_path):
        calls = []
        AtomicWriter(validate_json=calls.append).write(tmp_path / "state.json", "{}")
        assert calls == ["{}"]
