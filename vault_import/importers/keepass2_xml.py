from xml.etree.ElementTree import Element, ParseError

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as DefusedET

from vault_import.exceptions import MalformedInputError
from vault_import.importers.base import ImporterBase
from vault_import.importers.mapping import FieldMapping, apply_mappings, uri_list
from vault_import.importers.models import RowErrorPolicy
from vault_import.importers.registry import registry
from vault_import.importers.schemas import ImportResult
from vault_import.vault.models import FieldType
from vault_import.vault.schemas import CipherEntry

FIELDS = (
    FieldMapping("Title", "name"),
    FieldMapping("UserName", "login.username"),
    FieldMapping("Password", "login.password"),
    FieldMapping("otp", "login.totp"),
    FieldMapping("Notes", "notes"),
)

MAPPED_KEYS = {mapping.source for mapping in FIELDS} | {"URL"}


@registry.register("keepass2xml", "KeePass 2 (xml)")
class KeePass2XmlImporter(ImporterBase):
    FORMAT_NAME = "KeePass 2 XML"
    ROW_ERROR_POLICY = RowErrorPolicy.fail_fast

    async def parse(self, data: str | bytes) -> ImportResult:
        try:
            document = DefusedET.fromstring(data)
        except (ParseError, DefusedXmlException) as exc:
            raise MalformedInputError(self.FORMAT_NAME, f"invalid XML: {exc}") from exc

        root_group = document.find("./Root/Group")
        if document.tag != "KeePassFile" or root_group is None:
            raise MalformedInputError(self.FORMAT_NAME, "missing KeePassFile/Root/Group")

        result = ImportResult()
        self._traverse(root_group, None, result, is_root=True)
        return self.finalize(result)

    def _traverse(
        self, group: Element, parent_path: str | None, result: ImportResult, is_root: bool = False
    ) -> None:
        path = parent_path
        if not is_root:
            name = (group.findtext("Name") or "").strip()
            path = "/".join(part for part in (parent_path, name) if part) or None
            self.process_folder(result, path, add_relationship=False)

        for entry in group.findall("Entry"):
            entry_num = len(result.ciphers) + len(result.skipped_rows) + 1
            try:
                cipher = self._parse_entry(entry)
            except ValueError as exc:
                self.row_failed(result, entry_num, exc)
                continue
            self.add_cipher(result, cipher, folder=path)

        for child in group.findall("Group"):
            self._traverse(child, path, result)

    def _parse_entry(self, entry: Element) -> CipherEntry:
        values: dict[str, str] = {}
        protected: set[str] = set()
        for string in entry.findall("String"):
            key = string.findtext("Key")
            if key is None:
                raise ValueError("String element without Key")
            value_element = string.find("Value")
            values[key] = (value_element.text or "") if value_element is not None else ""
            if value_element is not None and value_element.get("ProtectInMemory") == "True":
                protected.add(key)

        cipher = self.init_login_cipher()
        apply_mappings(values, FIELDS, cipher)
        cipher.login.uris = uri_list(values.get("URL"))

        for key, value in values.items():
            if key in MAPPED_KEYS:
                continue
            kind = FieldType.hidden if key in protected else FieldType.text
            self.process_kvp(cipher, key, value, kind)

        self.convert_to_note_if_needed(cipher)
        return cipher
