"""Tests for the RoboForm CSV parser."""

import pytest

from vault_import.exceptions import MalformedInputError
from vault_import.importers import RoboFormCsvImporter
from vault_import.vault.models import CipherType, FieldType


class TestRoboFormCsv:
    async def test_parses_records_without_folders(self, load_fixture):
        result = await RoboFormCsvImporter().parse(load_fixture("roboform_empty_folders.csv"))

        assert result.folders == []
        assert len(result.ciphers) == 5
        assert result.ciphers[0].name == "Bitwarden"
        assert result.ciphers[0].login.username == "user@bitwarden.com"
        assert result.ciphers[0].login.password == "password"
        assert result.ciphers[0].login.uris[0].uri == "https://bitwarden.com"

    async def test_parses_records_with_folders(self, load_fixture):
        result = await RoboFormCsvImporter().parse(load_fixture("roboform_with_folders.csv"))

        assert len(result.ciphers) == 5
        assert [f.name for f in result.folders] == ["Work", "Personal", "Work/Dev"]
        assert result.folder_relationships == [(0, 0), (1, 1), (2, 2), (3, 1), (4, 0)]

    async def test_record_without_credentials_becomes_secure_note(self, load_fixture):
        result = await RoboFormCsvImporter().parse(load_fixture("roboform_empty_folders.csv"))

        note = result.ciphers[4]
        assert note.type == CipherType.secure_note
        assert note.notes == "This is a safe note"
        assert note.name == "note - 2023-03-31"
        assert note.login is None
        assert note.secure_note is not None

    async def test_extra_fields_become_custom_fields(self, load_fixture):
        result = await RoboFormCsvImporter().parse(load_fixture("roboform_empty_folders.csv"))

        github = result.ciphers[2]
        assert [(f.name, f.value, f.type) for f in github.fields] == [
            ("Recovery PIN", "4321", FieldType.hidden),
            ("Team", "platform", FieldType.text),
        ]
        # login fields repeated in RfFieldsV2 are not duplicated
        assert result.ciphers[0].fields == []

    async def test_scheme_less_url_gets_http_prefix(self, load_fixture):
        result = await RoboFormCsvImporter().parse(load_fixture("roboform_empty_folders.csv"))

        assert result.ciphers[3].login.uris[0].uri == "http://example.com"

    async def test_organization_import_moves_folders_to_collections(self, load_fixture):
        importer = RoboFormCsvImporter(organization_id="org-1")
        result = await importer.parse(load_fixture("roboform_with_folders.csv"))

        assert result.folders == []
        assert result.folder_relationships == []
        assert [c.name for c in result.collections] == ["Work", "Personal", "Work/Dev"]
        assert all(c.organization_id == "org-1" for c in result.collections)
        assert result.collection_relationships == [(0, 0), (1, 1), (2, 2), (3, 1), (4, 0)]

    async def test_empty_rows_are_skipped(self):
        data = "Name,Url,MatchUrl,Login,Pwd,Note,Folder,RfFieldsV2\n,,,,,,,\nSite,site.com,,bob,pw,,,\n"

        result = await RoboFormCsvImporter().parse(data)

        assert len(result.ciphers) == 1
        assert [(s.row, s.reason) for s in result.skipped_rows] == [(2, "empty record")]

    async def test_missing_columns_are_rejected(self):
        with pytest.raises(MalformedInputError, match="missing columns: Pwd"):
            await RoboFormCsvImporter().parse("Name,Url,Login\nSite,site.com,bob\n")
