"""Tests for the JSON file template store."""
import json
import threading

import pytest

from faceauth.core.exceptions import (
    EmptyIdentityError,
    IncompatibleTemplateError,
    ModelVersionMismatchError,
    TemplateNotFoundError,
)
from faceauth.domain.entities.template import Template
from faceauth.infrastructure.storage.json_store import JsonFileTemplateStore
from faceauth.infrastructure.storage.models import SCHEMA_VERSION

MODEL = "test-model/v1"


def make_template(identity="alice", offset=0.0, model_version=MODEL) -> Template:
    return Template(
        identity=identity,
        descriptors=[[0.1 + offset, 0.2, 0.3], [0.0, 0.1 + offset, 0.2]],
        model_version=model_version,
        sample_count=4,
    )


@pytest.fixture
def store(tmp_path) -> JsonFileTemplateStore:
    return JsonFileTemplateStore(tmp_path / "templates", model_version=MODEL)


class TestCrud:

    def test_put_get(self, store):
        original = make_template()
        store.put("alice", original)

        loaded = store.get("alice")

        assert loaded.identity == "alice"
        assert loaded.model_version == MODEL
        assert loaded.sample_count == 4
        assert loaded.created_at == original.created_at
        assert [d.tolist() for d in loaded.descriptors] == [d.tolist() for d in original.descriptors]

    def test_get_missing(self, store):
        with pytest.raises(TemplateNotFoundError) as exc_info:
            store.get("nobody")
        assert exc_info.value.code == "not_found"

    def test_put_replaces(self, store):
        store.put("alice", make_template())
        store.put("alice", make_template(offset=1.0))

        assert store.get("alice").descriptors[0][0] == pytest.approx(1.1)
        assert store.list() == {"alice"}

    def test_delete(self, store):
        store.put("alice", make_template())
        store.delete("alice")
        assert store.list() == set()
        with pytest.raises(TemplateNotFoundError):
            store.delete("alice")

    def test_list_and_clear(self, store):
        for name in ("alice", "bob", "carol"):
            store.put(name, make_template(identity=name))

        assert store.list() == {"alice", "bob", "carol"}
        store.clear()
        assert store.list() == set()

    def test_identity_keys_are_path_safe(self, store):
        awkward = "../Dr. O'Brien/ünïcode"
        store.put(awkward, make_template(identity=awkward))

        assert store.list() == {awkward}
        assert store.get(awkward).identity == awkward
        assert all(p.parent == store.directory for p in store.directory.iterdir())

    def test_blank_identity(self, store):
        with pytest.raises(EmptyIdentityError):
            store.get(" ")

    def test_identity_must_match_key(self, store):
        with pytest.raises(ValueError):
            store.put("bob", make_template(identity="alice"))

    def test_no_temp_files_left_behind(self, store):
        store.put("alice", make_template())
        names = [p.name for p in store.directory.iterdir()]
        assert names == ["alice.json"]


class TestVersioning:

    def test_record_layout(self, store):
        store.put("alice", make_template())
        record = json.loads((store.directory / "alice.json").read_text())

        assert record["schema_version"] == SCHEMA_VERSION
        assert record["model_version"] == MODEL
        assert record["identity"] == "alice"
        assert record["sample_count"] == 4
        assert len(record["descriptors"]) == 2
        assert "enrolled_at" in record

    def test_rejects_other_model_on_put(self, store):
        with pytest.raises(ModelVersionMismatchError):
            store.put("alice", make_template(model_version="other-model/v2"))

    def test_rejects_other_model_on_load(self, tmp_path, store):
        store.put("alice", make_template())
        upgraded = JsonFileTemplateStore(store.directory, model_version="test-model/v2")

        with pytest.raises(ModelVersionMismatchError) as exc_info:
            upgraded.get("alice")
        assert exc_info.value.details["stored_model_version"] == MODEL

    def test_rejects_future_schema(self, store):
        store.put("alice", make_template())
        path = store.directory / "alice.json"
        record = json.loads(path.read_text())
        record["schema_version"] = SCHEMA_VERSION + 1
        path.write_text(json.dumps(record))

        with pytest.raises(IncompatibleTemplateError):
            store.get("alice")

    def test_rejects_unversioned_blob(self, store):
        # The shape the browser demo kept in localStorage
        legacy = {"descriptor": [0.1, 0.2, 0.3], "enrolledAt": "2024-01-01T00:00:00Z"}
        (store.directory / "alice.json").write_text(json.dumps(legacy))

        with pytest.raises(IncompatibleTemplateError):
            store.get("alice")

    def test_rejects_corrupt_json(self, store):
        (store.directory / "alice.json").write_text("{not json")
        with pytest.raises(IncompatibleTemplateError):
            store.get("alice")

    @pytest.mark.parametrize("sample_count", [0, -3])
    def test_rejects_non_positive_sample_count(self, store, sample_count):
        store.put("alice", make_template())
        path = store.directory / "alice.json"
        record = json.loads(path.read_text())
        record["sample_count"] = sample_count
        path.write_text(json.dumps(record))

        with pytest.raises(IncompatibleTemplateError):
            store.get("alice")

    def test_rejects_empty_descriptor_set(self, store):
        store.put("alice", make_template())
        path = store.directory / "alice.json"
        record = json.loads(path.read_text())
        record["descriptors"] = []
        path.write_text(json.dumps(record))

        with pytest.raises(IncompatibleTemplateError):
            store.get("alice")

    def test_rejects_record_filed_under_another_identity(self, store):
        store.put("bob", make_template(identity="bob"))
        (store.directory / "alice.json").write_text((store.directory / "bob.json").read_text())

        with pytest.raises(IncompatibleTemplateError) as exc_info:
            store.get("alice")
        assert exc_info.value.details["record_identity"] == "bob"
        assert store.get("bob").identity == "bob"


def test_concurrent_writers_never_expose_partial_records(store):
    store.put("alice", make_template())
    errors = []

    def writer(offset):
        for _ in range(20):
            store.put("alice", make_template(offset=offset))

    def reader():
        for _ in range(50):
            try:
                template = store.get("alice")
                assert len(template.descriptors) == 2
            except Exception as e:  # collected for the main thread
                errors.append(e)

    threads = [threading.Thread(target=writer, args=(i,)) for i in range(3)]
    threads += [threading.Thread(target=reader) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert store.list() == {"alice"}
