from typing import NoReturn

import structlog

from vault_import.exceptions import CorruptImportResultError
from vault_import.importers.schemas import ImportBatch, ImportResult
from vault_import.vault.schemas import KeyValuePair

logger = structlog.get_logger()


class RelationshipResolver:
    """Validates relationship indices and produces the batch handed to persistence."""

    def resolve(self, result: ImportResult, organization_id: str | None) -> ImportBatch:
        folder_pairs = self._check_pairs(
            "folder", result.folder_relationships, len(result.ciphers), len(result.folders)
        )
        collection_pairs = self._check_pairs(
            "collection",
            result.collection_relationships,
            len(result.ciphers),
            len(result.collections),
        )

        cipher_indices = [cipher_index for cipher_index, _ in folder_pairs]
        if len(cipher_indices) != len(set(cipher_indices)):
            self._fail("a cipher is assigned to more than one folder")

        for collection in result.collections:
            if collection.organization_id != organization_id:
                self._fail(
                    f"collection '{collection.name}' is not scoped to the importing organization"
                )

        return ImportBatch(
            ciphers=result.ciphers,
            folders=result.folders,
            collections=result.collections,
            folder_relationships=[KeyValuePair(key=c, value=f) for c, f in folder_pairs],
            collection_relationships=[
                KeyValuePair(key=c, value=col) for c, col in collection_pairs
            ],
        )

    def _check_pairs(
        self, kind: str, pairs: list[tuple[int, int]], cipher_count: int, target_count: int
    ) -> list[tuple[int, int]]:
        """Return ``pairs`` without duplicates, failing on any out-of-range index."""
        unique: list[tuple[int, int]] = []
        for cipher_index, target_index in pairs:
            if not 0 <= cipher_index < cipher_count:
                self._fail(f"{kind} relationship references cipher {cipher_index}")
            if not 0 <= target_index < target_count:
                self._fail(f"{kind} relationship references {kind} {target_index}")
            if (cipher_index, target_index) not in unique:
                unique.append((cipher_index, target_index))
        return unique

    def _fail(self, message: str) -> NoReturn:
        logger.error("import_result_corrupt", reason=message)
        raise CorruptImportResultError(message)
