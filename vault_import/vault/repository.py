from typing import Protocol

from vault_import.vault.schemas import (
    CipherEntry,
    CollectionEntry,
    ExistingCollection,
    ExistingFolder,
    FolderEntry,
    KeyValuePair,
)


class VaultRepository(Protocol):
    """Storage/encryption collaborator that receives a finished import.

    Implementations own encryption, persistence and any retry policy.
    """

    async def get_existing_folders(self) -> list[ExistingFolder]: ...

    async def get_existing_collections(self, organization_id: str) -> list[ExistingCollection]: ...

    async def import_batch(
        self,
        ciphers: list[CipherEntry],
        folders: list[FolderEntry],
        collections: list[CollectionEntry],
        folder_relationships: list[KeyValuePair],
        collection_relationships: list[KeyValuePair],
        organization_id: str | None = None,
    ) -> None: ...
