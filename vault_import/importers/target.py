import structlog

from vault_import.importers.base import normalize_folder_path
from vault_import.importers.schemas import ImportResult
from vault_import.vault.repository import VaultRepository
from vault_import.vault.schemas import CollectionEntry, FolderEntry

logger = structlog.get_logger()


def _shift(pairs: list[tuple[int, int]]) -> list[tuple[int, int]]:
    return [(cipher_index, index + 1) for cipher_index, index in pairs]


def _attach_orphans(result: ImportResult, pairs: list[tuple[int, int]]) -> list[tuple[int, int]]:
    assigned = {cipher_index for cipher_index, _ in pairs}
    orphans = [(i, 0) for i in range(len(result.ciphers)) if i not in assigned]
    return pairs + orphans


class ImportTargetMerger:
    """Re-roots the folders or collections of a parsed import under one target entry."""

    def __init__(self, repository: VaultRepository) -> None:
        self._repository = repository

    async def set_import_target(
        self, result: ImportResult, organization_id: str | None, import_target: str
    ) -> None:
        """Place ``import_target`` at index 0 and nest every parsed entry below it.

        Only the folder/collection lists and the relationship pairs are rewritten.
        Calling this twice on the same result prefixes the names twice.
        """
        target = normalize_folder_path(import_target)
        if target is None:
            return

        if organization_id is None:
            await self._set_folder_target(result, target)
        else:
            await self._set_collection_target(result, organization_id, target)

    async def _set_folder_target(self, result: ImportResult, target: str) -> None:
        existing = await self._repository.get_existing_folders()
        match = next((folder for folder in existing if folder.name == target), None)
        root = FolderEntry(name=target, id=match.id if match else None)

        result.folders = [root] + [
            FolderEntry(name=f"{target}/{folder.name}") for folder in result.folders
        ]
        result.folder_relationships = _attach_orphans(
            result, _shift(result.folder_relationships)
        )
        logger.info(
            "import_target_set",
            kind="folder",
            reused=match is not None,
            entries=len(result.folders),
        )

    async def _set_collection_target(
        self, result: ImportResult, organization_id: str, target: str
    ) -> None:
        existing = await self._repository.get_existing_collections(organization_id)
        match = next((col for col in existing if col.name == target), None)
        root = CollectionEntry(
            name=target,
            organization_id=organization_id,
            id=match.id if match else None,
        )

        result.collections = [root] + [
            CollectionEntry(name=f"{target}/{col.name}", organization_id=col.organization_id)
            for col in result.collections
        ]
        result.collection_relationships = _attach_orphans(
            result, _shift(result.collection_relationships)
        )
        logger.info(
            "import_target_set",
            kind="collection",
            reused=match is not None,
            entries=len(result.collections),
        )
