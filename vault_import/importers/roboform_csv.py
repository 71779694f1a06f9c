import csv

from vault_import.importers.base import ImporterBase
from vault_import.importers.mapping import FieldMapping, apply_mappings, uri_list
from vault_import.importers.models import RowErrorPolicy
from vault_import.importers.registry import registry
from vault_import.importers.schemas import ImportResult
from vault_import.vault.models import FieldType
from vault_import.vault.schemas import CipherEntry

REQUIRED_HEADERS = ("Name", "Url", "Login", "Pwd")

FIELDS = (
    FieldMapping("Name", "name"),
    FieldMapping("Note", "notes"),
    FieldMapping("Login", "login.username"),
    FieldMapping("Pwd", "login.password"),
)

# RfFieldsV2 entries look like ``name$id$section$type$value``
RF_FIELD_PARTS = 5
SKIPPED_RF_FIELDS = {"User ID", "Password"}


@registry.register("roboformcsv", "RoboForm (csv)")
class RoboFormCsvImporter(ImporterBase):
    FORMAT_NAME = "RoboForm CSV"
    ROW_ERROR_POLICY = RowErrorPolicy.skip

    async def parse(self, data: str | bytes) -> ImportResult:
        rows = self.read_csv(self.decode(data), REQUIRED_HEADERS)
        result = ImportResult()

        for row_num, row in enumerate(rows, start=2):
            try:
                cipher = self._parse_row(row)
            except ValueError as exc:
                self.row_failed(result, row_num, exc)
                continue
            self.add_cipher(result, cipher, folder=row.get("Folder"))

        return self.finalize(result)

    def _parse_row(self, row: dict[str, str]) -> CipherEntry:
        if not any(value.strip() for value in row.values()):
            raise ValueError("empty record")

        cipher = self.init_login_cipher()
        apply_mappings(row, FIELDS, cipher)
        cipher.login.uris = uri_list(row.get("Url"))
        self._parse_rf_fields(cipher, row.get("RfFieldsV2"))
        self.convert_to_note_if_needed(cipher)
        return cipher

    def _parse_rf_fields(self, cipher: CipherEntry, value: str | None) -> None:
        if value is None or not value.strip():
            return
        for entry in next(csv.reader([value]), []):
            parts = entry.split("$")
            if len(parts) < RF_FIELD_PARTS:
                continue
            name, field_type, field_value = parts[0], parts[3], "$".join(parts[4:])
            if name in SKIPPED_RF_FIELDS:
                continue
            kind = FieldType.hidden if field_type == "pwd" else FieldType.text
            self.process_kvp(cipher, name, field_value, kind)
