import csv
import io
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import ClassVar, Protocol

import structlog

from vault_import.config import settings
from vault_import.exceptions import MalformedInputError
from vault_import.importers.models import RowErrorPolicy
from vault_import.importers.schemas import ImportResult, SkippedRow
from vault_import.vault.models import CipherType, FieldType, SecureNoteType
from vault_import.vault.schemas import (
    CardData,
    CipherEntry,
    CollectionEntry,
    CustomField,
    FolderEntry,
    IdentityData,
    LoginData,
    SecureNoteData,
)

logger = structlog.get_logger()

MAX_FIELD_VALUE_LENGTH = 200

NEW_LINE_RE = re.compile(r"\r\n|\r|\n")
CARD_EXPIRY_RE = re.compile(r"^(0?[1-9]|1[0-2])[/\-.]((?:[12]\d)?\d{2})$")


def normalize_folder_path(name: str | None, separator: str = "/") -> str | None:
    """Turn a vendor group path into a ``/`` separated path, or ``None`` if empty."""
    if name is None:
        return None
    if separator != "/":
        name = name.replace(separator, "/")
    name = name.replace("\\", "/")
    segments = [segment.strip() for segment in name.split("/")]
    path = "/".join(segment for segment in segments if segment)
    return path or None


class ImporterBase(ABC):
    FORMAT_NAME: ClassVar[str] = "Import"
    ROW_ERROR_POLICY: ClassVar[RowErrorPolicy] = RowErrorPolicy.fail_fast
    FOLDER_SEPARATOR: ClassVar[str] = "/"

    def __init__(self, organization_id: str | None = None) -> None:
        self.organization_id = organization_id

    @property
    def organization(self) -> bool:
        return self.organization_id is not None

    @abstractmethod
    async def parse(self, data: str | bytes) -> ImportResult:
        """Parse a raw export into an import result or raise a ``VaultImportError``."""
        ...

    def decode(self, data: str | bytes) -> str:
        """Decode bytes to text, stripping a UTF-8 BOM, with a single-byte fallback."""
        if isinstance(data, str):
            return data.removeprefix("\ufeff")
        try:
            return data.decode("utf-8-sig")
        except UnicodeDecodeError:
            logger.info(
                "import_decode_fallback",
                format=self.FORMAT_NAME,
                encoding=settings.fallback_encoding,
            )
            try:
                return data.decode(settings.fallback_encoding)
            except UnicodeDecodeError as exc:
                raise MalformedInputError(self.FORMAT_NAME, "unreadable encoding") from exc

    def read_csv(self, text: str, required_headers: Iterable[str] = ()) -> list[dict[str, str]]:
        """Read CSV rows keyed by their (whitespace-trimmed) header names."""
        reader = csv.DictReader(io.StringIO(text, newline=""))
        try:
            if reader.fieldnames is None:
                raise MalformedInputError(self.FORMAT_NAME, "missing header row")
            reader.fieldnames = [name.strip() for name in reader.fieldnames]
            missing = [h for h in required_headers if h not in reader.fieldnames]
            if missing:
                raise MalformedInputError(
                    self.FORMAT_NAME, f"missing columns: {', '.join(missing)}"
                )
            rows = [
                {key: value or "" for key, value in row.items() if key is not None}
                for row in reader
            ]
        except csv.Error as exc:
            raise MalformedInputError(self.FORMAT_NAME, str(exc), row=reader.line_num) from exc

        logger.debug("csv_rows_read", format=self.FORMAT_NAME, count=len(rows))
        return rows

    def row_failed(self, result: ImportResult, row: int, exc: Exception) -> None:
        """Apply this parser's row error policy to a failed record."""
        if self.ROW_ERROR_POLICY is RowErrorPolicy.fail_fast:
            raise MalformedInputError(self.FORMAT_NAME, str(exc), row=row) from exc
        result.skipped_rows.append(SkippedRow(row=row, reason=str(exc)))
        logger.warning("import_row_skipped", format=self.FORMAT_NAME, row=row, reason=str(exc))

    def add_cipher(
        self,
        result: ImportResult,
        cipher: CipherEntry,
        folder: str | None = None,
        collections: Iterable[str] = (),
    ) -> None:
        """Clean up ``cipher`` and append it together with its relationships."""
        self.cleanup_cipher(cipher)
        self.process_folder(result, folder)
        for collection in collections:
            self.process_collection(result, collection)
        result.ciphers.append(cipher)

    def process_folder(
        self, result: ImportResult, folder_name: str | None, add_relationship: bool = True
    ) -> int | None:
        """Register ``folder_name`` (first-seen order) and link it to the next cipher."""
        path = normalize_folder_path(folder_name, self.FOLDER_SEPARATOR)
        if path is None:
            return None

        folder_index = next(
            (i for i, folder in enumerate(result.folders) if folder.name == path), None
        )
        if folder_index is None:
            folder_index = len(result.folders)
            result.folders.append(FolderEntry(name=path))

        if add_relationship:
            result.folder_relationships.append((len(result.ciphers), folder_index))
        return folder_index

    def process_collection(
        self, result: ImportResult, collection_name: str | None, add_relationship: bool = True
    ) -> int | None:
        path = normalize_folder_path(collection_name, self.FOLDER_SEPARATOR)
        if path is None:
            return None

        collection_index = next(
            (i for i, col in enumerate(result.collections) if col.name == path), None
        )
        if collection_index is None:
            collection_index = len(result.collections)
            result.collections.append(
                CollectionEntry(name=path, organization_id=self.organization_id)
            )
        if add_relationship:
            pair = (len(result.ciphers), collection_index)
            if pair not in result.collection_relationships:
                result.collection_relationships.append(pair)
        return collection_index

    def move_folders_to_collections(self, result: ImportResult) -> None:
        offset = len(result.collections)
        result.collection_relationships.extend(
            (cipher_index, folder_index + offset)
            for cipher_index, folder_index in result.folder_relationships
        )
        result.collections.extend(
            CollectionEntry(name=folder.name, organization_id=self.organization_id)
            for folder in result.folders
        )
        result.folder_relationships = []
        result.folders = []

    def finalize(self, result: ImportResult) -> ImportResult:
        """Scope folders to the organization when importing into one."""
        if self.organization and result.folders:
            self.move_folders_to_collections(result)

        logger.info(
            "import_parsed",
            format=self.FORMAT_NAME,
            ciphers=len(result.ciphers),
            folders=len(result.folders),
            collections=len(result.collections),
            skipped=len(result.skipped_rows),
        )
        return result

    def init_login_cipher(self) -> CipherEntry:
        return CipherEntry(type=CipherType.login, login=LoginData())

    def convert_to_note_if_needed(self, cipher: CipherEntry) -> None:
        login = cipher.login
        if (
            cipher.type == CipherType.login
            and login is not None
            and not (login.username or "").strip()
            and not (login.password or "").strip()
            and not login.uris
        ):
            cipher.type = CipherType.secure_note
            cipher.secure_note = SecureNoteData(type=SecureNoteType.generic)

    def cleanup_cipher(self, cipher: CipherEntry) -> None:
        if cipher.name is None or not cipher.name.strip():
            cipher.name = "--"
        else:
            cipher.name = cipher.name.strip()

        if cipher.notes is not None:
            cipher.notes = cipher.notes.strip() or None

        if cipher.type != CipherType.login:
            cipher.login = None
        elif cipher.login is None:
            cipher.login = LoginData()
        if cipher.type != CipherType.card:
            cipher.card = None
        elif cipher.card is None:
            cipher.card = CardData()
        if cipher.type != CipherType.identity:
            cipher.identity = None
        elif cipher.identity is None:
            cipher.identity = IdentityData()
        if cipher.type != CipherType.secure_note:
            cipher.secure_note = None
        elif cipher.secure_note is None:
            cipher.secure_note = SecureNoteData()

    def process_kvp(
        self,
        cipher: CipherEntry,
        key: str | None,
        value: str | None,
        field_type: FieldType = FieldType.text,
    ) -> None:
        """Store an extra vendor value as a custom field, or in the notes if it is long."""
        if value is None or not value.strip():
            return
        key = key.strip() if key and key.strip() else ""

        if len(value) > MAX_FIELD_VALUE_LENGTH or NEW_LINE_RE.search(value.strip()):
            lines = "\n".join(self.split_new_line(value))
            cipher.notes = f"{cipher.notes or ''}{key}: {lines}\n"
            return
        cipher.fields.append(CustomField(name=key, value=value, type=field_type))

    def set_card_expiration(self, cipher: CipherEntry, expiration: str | None) -> bool:
        if cipher.card is None or expiration is None:
            return False
        match = CARD_EXPIRY_RE.match(re.sub(r"\s", "", expiration))
        if match is None:
            return False

        month, year = match.groups()
        cipher.card.exp_month = str(int(month))
        cipher.card.exp_year = f"20{year}" if len(year) == 2 else year
        return True

    def split_new_line(self, text: str) -> list[str]:
        return NEW_LINE_RE.split(text)


class Importer(Protocol):
    """Anything the import service can run: a format parser or a decorator around one."""

    FORMAT_NAME: str
    organization_id: str | None

    async def parse(self, data: str | bytes) -> ImportResult: ...
