from pydantic import BaseModel, Field

from vault_import.vault.schemas import CipherEntry, CollectionEntry, FolderEntry, KeyValuePair


class SkippedRow(BaseModel):
    row: int
    reason: str


class ImportResult(BaseModel):
    """Canonical output of every format parser.

    Relationships are ``(cipher_index, folder_or_collection_index)`` pairs into the
    result's own sequences. Entries never carry indices, so re-rooting only has to
    rewrite the pair lists.
    """

    ciphers: list[CipherEntry] = Field(default_factory=list)
    folders: list[FolderEntry] = Field(default_factory=list)
    collections: list[CollectionEntry] = Field(default_factory=list)
    folder_relationships: list[tuple[int, int]] = Field(default_factory=list)
    collection_relationships: list[tuple[int, int]] = Field(default_factory=list)
    skipped_rows: list[SkippedRow] = Field(default_factory=list)


class ImportBatch(BaseModel):
    ciphers: list[CipherEntry]
    folders: list[FolderEntry]
    collections: list[CollectionEntry]
    folder_relationships: list[KeyValuePair]
    collection_relationships: list[KeyValuePair]

    def folder_for(self, cipher_index: int) -> FolderEntry | None:
        for pair in self.folder_relationships:
            if pair.key == cipher_index:
                return self.folders[pair.value]
        return None

    def collections_for(self, cipher_index: int) -> list[CollectionEntry]:
        return [
            self.collections[pair.value]
            for pair in self.collection_relationships
            if pair.key == cipher_index
        ]


class ImportOption(BaseModel):
    id: str
    name: str
    featured: bool = False
    password_protected: bool = False
    base_format: str | None = None


class ImportSummary(BaseModel):
    format: str
    cipher_count: int
    folder_count: int
    collection_count: int
    skipped_rows: list[SkippedRow]
