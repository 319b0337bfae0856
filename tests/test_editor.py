"""Tests for the decrypt / edit / re-encrypt workflow."""
import json

import pytest

from navigator_secrets.vault import ConfigurationError, FormatError, InvalidSecretNameError
from navigator_secrets.vault.editor import run_editor


class RecordingEditor:
    """Fake editor that rewrites the temp file and remembers what it saw."""

    def __init__(self, transform=None, content=None):
        self.transform = transform
        self.content = content
        self.calls = []
        self.seen = None

    def __call__(self, editor, path):
        self.calls.append((editor, path))
        with open(path, encoding="utf-8") as fh:
            self.seen = json.load(fh)
        if self.content is not None:
            data = self.content
        else:
            data = json.dumps(self.transform(dict(self.seen)))
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(data)


class TestEditSecrets:
    def test_edit_roundtrip(self, vault):
        vault.add_entry("KEEP", "same")
        vault.add_entry("CHANGE", "old")
        vault.add_entry("DROP", "bye")

        def transform(data):
            data["CHANGE"] = "new"
            data["ADDED"] = "hello"
            del data["DROP"]
            return data

        editor = RecordingEditor(transform)
        changes = vault.edit(runner=editor)

        assert editor.seen == {"KEEP": "same", "CHANGE": "old", "DROP": "bye"}
        assert editor.calls[0][0] == "vi"
        assert changes == {"added": ["ADDED"], "removed": ["DROP"], "changed": ["CHANGE"]}
        assert vault.read_all() == {"KEEP": "same", "CHANGE": "new", "ADDED": "hello"}

    def test_temp_file_removed(self, vault):
        editor = RecordingEditor(lambda data: data)
        vault.edit(runner=editor)
        _, path = editor.calls[0]
        with pytest.raises(FileNotFoundError):
            open(path)

    def test_invalid_json_keeps_store(self, vault, vault_paths):
        vault.add_entry("A", "1")
        before = vault_paths["secrets_file"].read_bytes()
        editor = RecordingEditor(content="{not json")
        with pytest.raises(FormatError):
            vault.edit(runner=editor)
        assert vault_paths["secrets_file"].read_bytes() == before
        with pytest.raises(FileNotFoundError):
            open(editor.calls[0][1])

    def test_invalid_name_keeps_store(self, vault, vault_paths):
        vault.add_entry("A", "1")
        before = vault_paths["secrets_file"].read_bytes()
        editor = RecordingEditor(lambda data: {**data, "bad name": "x"})
        with pytest.raises(InvalidSecretNameError):
            vault.edit(runner=editor)
        assert vault_paths["secrets_file"].read_bytes() == before

    def test_editor_failure_removes_temp_file(self, vault):
        paths = []

        def crashing_editor(editor, path):
            paths.append(path)
            raise RuntimeError("editor crashed")

        with pytest.raises(RuntimeError):
            vault.edit(runner=crashing_editor)
        with pytest.raises(FileNotFoundError):
            open(paths[0])

    def test_non_string_values(self, vault):
        editor = RecordingEditor(content='{"A": 1}')
        with pytest.raises(FormatError):
            vault.edit(runner=editor)


class TestRunEditor:
    def test_missing_editor(self, tmp_path):
        with pytest.raises(ConfigurationError):
            run_editor("definitely-not-an-editor-binary", str(tmp_path / "f.json"))

    def test_exit_status_ignored(self, tmp_path):
        run_editor("false", str(tmp_path / "f.json"))
