"""End-to-end tests for the import service."""

import json

import pytest

from vault_import.config import Settings
from vault_import.exceptions import (
    DecryptionFailedError,
    MalformedInputError,
    MissingOrganizationError,
    OrganizationMismatchError,
)
from vault_import.importers import ImportService, PasswordProtectedImporter
from vault_import.importers.base import ImporterBase
from vault_import.importers.service import is_bad_data
from vault_import.importers.schemas import ImportResult
from vault_import.vault.schemas import CipherEntry, CollectionEntry, ExistingFolder, LoginData


class TestImportService:
    async def test_imports_personal_export(self, repository, load_fixture):
        service = ImportService(repository)
        importer = service.get_importer("bitwardencsv")

        summary = await service.import_data(importer, load_fixture("bitwarden.csv"))

        assert summary.format == "Bitwarden CSV"
        assert (summary.cipher_count, summary.folder_count, summary.collection_count) == (4, 2, 0)
        assert len(repository.batches) == 1
        batch = repository.batches[0]
        assert batch["organization_id"] is None
        assert [(p.key, p.value) for p in batch["folder_relationships"]] == [
            (0, 0),
            (1, 1),
            (3, 0),
        ]

    async def test_imports_under_target_folder(self, repository_with, load_fixture):
        repository = repository_with(folders=[ExistingFolder(id="f-9", name="Imported")])
        service = ImportService(repository)
        importer = service.get_importer("roboformcsv")

        await service.import_data(
            importer, load_fixture("roboform_with_folders.csv"), import_target="Imported"
        )

        batch = repository.batches[0]
        assert [f.name for f in batch["folders"]] == [
            "Imported",
            "Imported/Work",
            "Imported/Personal",
            "Imported/Work/Dev",
        ]
        assert batch["folders"][0].id == "f-9"
        assert [(p.key, p.value) for p in batch["folder_relationships"]] == [
            (0, 1),
            (1, 2),
            (2, 3),
            (3, 2),
            (4, 1),
        ]

    async def test_imports_into_organization(self, repository, load_fixture):
        service = ImportService(repository)
        importer = service.get_importer("bitwardenjson", organization_id="org-1")

        summary = await service.import_data(
            importer,
            load_fixture("bitwarden_org.json"),
            organization_id="org-1",
            import_target="Migrated",
        )

        batch = repository.batches[0]
        assert summary.collection_count == 3
        assert [c.name for c in batch["collections"]] == [
            "Migrated",
            "Migrated/Engineering",
            "Migrated/Finance",
        ]
        # the runbook had no collection and lands in the target
        assert [(p.key, p.value) for p in batch["collection_relationships"]] == [
            (0, 1),
            (0, 2),
            (1, 0),
        ]
        assert batch["organization_id"] == "org-1"

    async def test_collections_without_organization(self, repository):
        class CollectionsOnly(ImporterBase):
            FORMAT_NAME = "Collections only"

            async def parse(self, data):
                return ImportResult(
                    ciphers=[CipherEntry(name="a")],
                    collections=[CollectionEntry(name="X")],
                    collection_relationships=[(0, 0)],
                )

        service = ImportService(repository)

        with pytest.raises(MissingOrganizationError):
            await service.import_data(CollectionsOnly(), "ignored")

        assert repository.batches == []
        assert repository.folder_lookups == 0

    async def test_organization_defaults_to_importer(self, repository, load_fixture):
        service = ImportService(repository)
        importer = service.get_importer("bitwardencsv", organization_id="org-1")

        summary = await service.import_data(importer, load_fixture("bitwarden_org.csv"))

        assert summary.collection_count > 0
        assert repository.batches[0]["organization_id"] == "org-1"

    async def test_organization_mismatch(self, repository, load_fixture):
        service = ImportService(repository)
        importer = service.get_importer("roboformcsv", organization_id="org-1")

        with pytest.raises(OrganizationMismatchError) as exc_info:
            await service.import_data(
                importer, load_fixture("roboform_with_folders.csv"), organization_id="org-2"
            )

        assert exc_info.value.code == "ORGANIZATION_MISMATCH"
        assert repository.batches == []
        assert repository.folder_lookups == 0
        assert repository.collection_lookups == []

    async def test_personal_importer_into_organization(self, repository, load_fixture):
        service = ImportService(repository)
        importer = service.get_importer("roboformcsv")

        with pytest.raises(OrganizationMismatchError):
            await service.import_data(
                importer,
                load_fixture("roboform_with_folders.csv"),
                organization_id="org-1",
                import_target="T",
            )

        assert repository.batches == []
        assert repository.folder_lookups == 0
        assert repository.collection_lookups == []

    async def test_nothing_to_import(self, repository):
        service = ImportService(repository)
        importer = service.get_importer("chromecsv")

        with pytest.raises(MalformedInputError, match="nothing to import"):
            await service.import_data(importer, "name,url,username,password\n")

        assert repository.batches == []

    async def test_wrong_format_is_detected(self, repository):
        service = ImportService(repository)
        importer = service.get_importer("bitwardencsv")
        data = "type,name,login_username\nlogin,,a\nlogin,,b\nlogin,,c\n"

        with pytest.raises(MalformedInputError, match="different format"):
            await service.import_data(importer, data)

        assert repository.batches == []

    async def test_payload_size_limit(self, repository):
        service = ImportService(repository, settings=Settings(max_payload_bytes=16))
        importer = service.get_importer("chromecsv")

        with pytest.raises(MalformedInputError, match="byte limit"):
            await service.import_data(importer, "name,url,username,password\nx,y,z,w\n")

    async def test_payload_size_counts_lone_surrogates(self, repository):
        service = ImportService(repository, settings=Settings(max_payload_bytes=4))
        importer = service.get_importer("chromecsv")

        with pytest.raises(MalformedInputError, match="byte limit"):
            await service.import_data(importer, "name,url\n\ud800x")

    async def test_skipped_rows_are_reported(self, repository, load_fixture):
        service = ImportService(repository)
        importer = service.get_importer("chromecsv")

        summary = await service.import_data(importer, load_fixture("chrome.csv"))

        assert summary.cipher_count == 3
        assert [s.row for s in summary.skipped_rows] == [5]

    async def test_password_protected_import(self, repository, protected_export):
        prompts = []

        async def prompt():
            prompts.append(True)
            return "hunter2"

        plaintext = json.dumps(
            {"items": [{"type": 1, "name": "Site", "login": {"password": "pw"}}]}
        )
        service = ImportService(repository)
        importer = service.get_importer("bitwardenpasswordprotected", password_prompt=prompt)

        summary = await service.import_data(importer, protected_export(plaintext, "hunter2"))

        assert isinstance(importer, PasswordProtectedImporter)
        assert summary.cipher_count == 1
        assert summary.format == "Bitwarden JSON (password protected)"
        assert len(prompts) == 1

    async def test_wrong_password_persists_nothing(self, repository, protected_export):
        async def prompt():
            return "wrong"

        service = ImportService(repository)
        importer = service.get_importer("bitwardenpasswordprotected", password_prompt=prompt)

        with pytest.raises(DecryptionFailedError):
            await service.import_data(importer, protected_export("{}", "right"))

        assert repository.batches == []


class TestBadData:
    def test_named_logins_are_fine(self):
        result = ImportResult(ciphers=[CipherEntry(name="a", login=LoginData())])

        assert is_bad_data(result) is False

    def test_unnamed_logins_without_password(self):
        result = ImportResult(
            ciphers=[CipherEntry(name="--", login=LoginData(username=str(i))) for i in range(5)]
        )

        assert is_bad_data(result) is True

    def test_one_good_sample_is_enough(self):
        ciphers = [CipherEntry(name="--", login=LoginData()) for _ in range(5)]
        ciphers[2].login.password = "pw"

        assert is_bad_data(ImportResult(ciphers=ciphers)) is False
