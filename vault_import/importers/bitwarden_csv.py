import csv

from vault_import.importers.base import ImporterBase
from vault_import.importers.mapping import FieldMapping, apply_mappings, non_zero, uri_list
from vault_import.importers.models import RowErrorPolicy
from vault_import.importers.registry import registry
from vault_import.importers.schemas import ImportResult
from vault_import.vault.models import CipherRepromptType, CipherType, FieldType
from vault_import.vault.schemas import CipherEntry, CustomField, LoginData, SecureNoteData

REQUIRED_HEADERS = ("type", "name")

CIPHER_FIELDS = (
    FieldMapping("name", "name"),
    FieldMapping("notes", "notes"),
)

LOGIN_FIELDS = (
    FieldMapping("login_username", "login.username"),
    FieldMapping("login_password", "login.password"),
    FieldMapping("login_totp", "login.totp"),
)


def parse_reprompt(value: str | None) -> CipherRepromptType:
    if value is None or not value.strip():
        return CipherRepromptType.none
    try:
        return CipherRepromptType(int(value))
    except ValueError:
        return CipherRepromptType.none


def parse_custom_fields(value: str | None) -> list[CustomField]:
    """Parse ``name: value`` lines of the ``fields`` column."""
    fields: list[CustomField] = []
    for line in (value or "").splitlines():
        if not line.strip():
            continue
        name, delim, field_value = line.rpartition(": ")
        if not delim:
            continue
        fields.append(CustomField(name=name, value=field_value or None, type=FieldType.text))
    return fields


@registry.register("bitwardencsv", "Bitwarden (csv)", featured=True)
class BitwardenCsvImporter(ImporterBase):
    FORMAT_NAME = "Bitwarden CSV"
    ROW_ERROR_POLICY = RowErrorPolicy.fail_fast

    async def parse(self, data: str | bytes) -> ImportResult:
        """Parse a Bitwarden CSV export (personal or organization layout)."""
        rows = self.read_csv(self.decode(data), REQUIRED_HEADERS)
        result = ImportResult()

        for row_num, row in enumerate(rows, start=2):
            try:
                cipher = self._parse_row(row)
            except ValueError as exc:
                self.row_failed(result, row_num, exc)
                continue

            if self.organization:
                collections = next(csv.reader([row.get("collections", "")]), [])
                self.add_cipher(result, cipher, collections=collections)
            else:
                self.add_cipher(result, cipher, folder=row.get("folder"))

        return self.finalize(result)

    def _parse_row(self, row: dict[str, str]) -> CipherEntry:
        cipher = CipherEntry()
        apply_mappings(row, CIPHER_FIELDS, cipher)
        cipher.favorite = not self.organization and non_zero(row.get("favorite"))
        cipher.reprompt = parse_reprompt(row.get("reprompt"))
        cipher.fields = parse_custom_fields(row.get("fields"))

        row_type = row.get("type", "").strip().lower() or "login"
        match row_type:
            case "note":
                cipher.type = CipherType.secure_note
                cipher.secure_note = SecureNoteData()
            case "login":
                cipher.type = CipherType.login
                cipher.login = LoginData()
                apply_mappings(row, LOGIN_FIELDS, cipher)
                uris = next(csv.reader([row.get("login_uri", "")]), [])
                cipher.login.uris = uri_list(uris)
            case _:
                raise ValueError(f"Unsupported item type '{row_type}'")
        return cipher
