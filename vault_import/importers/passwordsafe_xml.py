from xml.etree.ElementTree import Element, ParseError

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as DefusedET

from vault_import.exceptions import MalformedInputError
from vault_import.importers.base import ImporterBase
from vault_import.importers.mapping import FieldMapping, apply_mappings, uri_list
from vault_import.importers.models import RowErrorPolicy
from vault_import.importers.registry import registry
from vault_import.importers.schemas import ImportResult
from vault_import.vault.schemas import CipherEntry

FIELDS = (
    FieldMapping("title", "name"),
    FieldMapping("username", "login.username"),
    FieldMapping("password", "login.password"),
)


@registry.register("passwordsafexml", "Password Safe (xml)")
class PasswordSafeXmlImporter(ImporterBase):
    """Password Safe XML exports.

    Groups are dot separated and multi-line notes are flattened with the
    document's ``delimiter`` character.
    """

    FORMAT_NAME = "Password Safe XML"
    ROW_ERROR_POLICY = RowErrorPolicy.skip
    FOLDER_SEPARATOR = "."

    async def parse(self, data: str | bytes) -> ImportResult:
        try:
            document = DefusedET.fromstring(data)
        except (ParseError, DefusedXmlException) as exc:
            raise MalformedInputError(self.FORMAT_NAME, f"invalid XML: {exc}") from exc

        if document.tag != "passwordsafe":
            raise MalformedInputError(self.FORMAT_NAME, "missing passwordsafe root element")

        delimiter = document.get("delimiter") or ""
        result = ImportResult()
        for entry_num, entry in enumerate(document.findall("entry"), start=1):
            try:
                cipher = self._parse_entry(entry, delimiter)
            except ValueError as exc:
                self.row_failed(result, entry_num, exc)
                continue
            self.add_cipher(result, cipher, folder=entry.findtext("group"))

        return self.finalize(result)

    def _parse_entry(self, entry: Element, delimiter: str) -> CipherEntry:
        values = {child.tag: child.text or "" for child in entry}
        if not any(value.strip() for value in values.values()):
            raise ValueError("empty entry")

        cipher = self.init_login_cipher()
        apply_mappings(values, FIELDS, cipher)
        cipher.login.uris = uri_list(values.get("url"))

        notes = values.get("notes", "")
        if delimiter:
            notes = notes.replace(delimiter, "\n")
        cipher.notes = notes or None

        self.process_kvp(cipher, "Email", values.get("email"))
        return cipher
