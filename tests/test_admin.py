"""
Tests for the cityjson-admin command line.
"""

import json

import pytest

from cityjson_features.admin import main
from cityjson_features.errors import StorageUnavailable

from conftest import FakeRepository, sample_document


@pytest.fixture
def document_file(tmp_path):
    path = tmp_path / "delft.city.json"
    path.write_text(json.dumps(sample_document()), encoding="utf-8")
    return path


class TestAdminCommands:
    """Tests for init-schema, import and delete."""

    def test_init_schema(self):
        """Test init-schema creates the tables."""
        repo = FakeRepository()

        assert main(["init-schema"], repository=repo) == 0
        assert repo.schema_created

    def test_import_uses_file_name(self, document_file):
        """Test the CityModel name defaults to the file name up to the first dot."""
        repo = FakeRepository()

        assert main(["import", str(document_file)], repository=repo) == 0
        assert list(repo.models) == ["delft"]
        assert len(repo.objects["delft"]) == 3

    def test_import_with_name(self, document_file):
        """Test --name overrides the CityModel name."""
        repo = FakeRepository()

        assert main(["import", str(document_file), "--name", "delft-2020"], repository=repo) == 0
        assert list(repo.models) == ["delft-2020"]

    def test_import_invalid_document(self, tmp_path):
        """Test an invalid document fails without storing anything."""
        document = sample_document()
        document["CityObjects"]["building-1"]["geometry"][0]["lod"] = "5"
        path = tmp_path / "broken.json"
        path.write_text(json.dumps(document), encoding="utf-8")
        repo = FakeRepository()

        assert main(["import", str(path)], repository=repo) == 1
        assert repo.models == {}

    def test_import_missing_file(self, tmp_path):
        """Test a missing file is a failed command."""
        assert main(["import", str(tmp_path / "nope.json")], repository=FakeRepository()) == 1

    def test_import_not_json(self, tmp_path):
        """Test a file that is not JSON is a failed command."""
        path = tmp_path / "delft.json"
        path.write_text("not json", encoding="utf-8")

        assert main(["import", str(path)], repository=FakeRepository()) == 1

    def test_delete(self, repository):
        """Test delete removes the model and its objects."""
        assert main(["delete", "delft"], repository=repository) == 0
        assert "delft" not in repository.models
        assert "delft" not in repository.objects

    def test_delete_unknown(self, repository):
        """Test deleting an unknown model fails."""
        assert main(["delete", "rotterdam"], repository=repository) == 1

    def test_storage_unavailable(self):
        """Test a storage fault fails the command."""
        repo = FakeRepository()
        repo.fail_with = StorageUnavailable("Storage is unavailable: connection refused")

        assert main(["init-schema"], repository=repo) == 1

    def test_no_command(self):
        """Test running without a command prints help and fails."""
        assert main([], repository=FakeRepository()) == 1
