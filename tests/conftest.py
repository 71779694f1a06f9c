import base64
import json
import os
from pathlib import Path

import pytest
from cryptography.hazmat.primitives import hashes, hmac, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from vault_import.importers.crypto import KdfConfig, make_key
from vault_import.importers.models import KdfType
from vault_import.vault.schemas import (
    CipherEntry,
    CollectionEntry,
    ExistingCollection,
    ExistingFolder,
    FolderEntry,
    KeyValuePair,
)

FIXTURES = Path(__file__).parent / "fixtures"


class FakeVaultRepository:
    """In-memory stand-in for the storage collaborator; records every call."""

    def __init__(
        self,
        folders: list[ExistingFolder] | None = None,
        collections: list[ExistingCollection] | None = None,
    ) -> None:
        self.folders = folders or []
        self.collections = collections or []
        self.folder_lookups = 0
        self.collection_lookups: list[str] = []
        self.batches: list[dict] = []

    async def get_existing_folders(self) -> list[ExistingFolder]:
        self.folder_lookups += 1
        return list(self.folders)

    async def get_existing_collections(self, organization_id: str) -> list[ExistingCollection]:
        self.collection_lookups.append(organization_id)
        return [c for c in self.collections if c.organization_id == organization_id]

    async def import_batch(
        self,
        ciphers: list[CipherEntry],
        folders: list[FolderEntry],
        collections: list[CollectionEntry],
        folder_relationships: list[KeyValuePair],
        collection_relationships: list[KeyValuePair],
        organization_id: str | None = None,
    ) -> None:
        self.batches.append(
            {
                "ciphers": ciphers,
                "folders": folders,
                "collections": collections,
                "folder_relationships": folder_relationships,
                "collection_relationships": collection_relationships,
                "organization_id": organization_id,
            }
        )


def _encrypt(plaintext: bytes, key) -> str:
    iv = os.urandom(16)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(plaintext) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key.enc_key), modes.CBC(iv)).encryptor()
    data = encryptor.update(padded) + encryptor.finalize()
    signer = hmac.HMAC(key.mac_key, hashes.SHA256())
    signer.update(iv + data)
    mac = signer.finalize()
    parts = (base64.b64encode(part).decode("ascii") for part in (iv, data, mac))
    return "2." + "|".join(parts)


def build_protected_export(
    plaintext: str,
    password: str,
    salt: str = "c2FsdHlzYWx0",
    iterations: int = 5000,
) -> str:
    """Produce a PBKDF2 password protected envelope around ``plaintext``."""
    kdf = KdfConfig(kdf_type=KdfType.pbkdf2_sha256, iterations=iterations)
    key = make_key(password, salt, kdf)
    envelope = {
        "encrypted": True,
        "passwordProtected": True,
        "salt": salt,
        "kdfType": int(KdfType.pbkdf2_sha256),
        "kdfIterations": iterations,
        "kdfMemory": None,
        "kdfParallelism": None,
        "encKeyValidation_DO_NOT_EDIT": _encrypt(b"validation", key),
        "data": _encrypt(plaintext.encode("utf-8"), key),
    }
    return json.dumps(envelope)


@pytest.fixture
def load_fixture():
    def _load(name: str) -> bytes:
        return (FIXTURES / name).read_bytes()

    return _load


@pytest.fixture
def protected_export():
    return build_protected_export


@pytest.fixture
def repository() -> FakeVaultRepository:
    return FakeVaultRepository()


@pytest.fixture
def repository_with():
    """Build a repository pre-populated with existing folders or collections."""
    return FakeVaultRepository
