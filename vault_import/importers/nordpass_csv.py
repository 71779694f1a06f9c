import re

from vault_import.importers.base import ImporterBase
from vault_import.importers.mapping import FieldMapping, apply_mappings, stripped, text, uri_list
from vault_import.importers.models import RowErrorPolicy
from vault_import.importers.registry import registry
from vault_import.importers.schemas import ImportResult
from vault_import.vault.models import CipherType, FieldType
from vault_import.vault.schemas import (
    CardData,
    CipherEntry,
    IdentityData,
    LoginData,
    SecureNoteData,
)

REQUIRED_HEADERS = ("name", "url", "username", "password", "note", "folder")

COMMON_FIELDS = (
    FieldMapping("name", "name"),
    FieldMapping("note", "notes"),
)

LOGIN_FIELDS = (
    FieldMapping("username", "login.username"),
    FieldMapping("password", "login.password"),
)

CARD_FIELDS = (
    FieldMapping("cardholdername", "card.cardholder_name"),
    FieldMapping("cardnumber", "card.number", stripped),
    FieldMapping("cvc", "card.code", stripped),
)

IDENTITY_FIELDS = (
    FieldMapping("email", "identity.email", stripped),
    FieldMapping("phone_number", "identity.phone", stripped),
    FieldMapping("address1", "identity.address1"),
    FieldMapping("address2", "identity.address2"),
    FieldMapping("city", "identity.city"),
    FieldMapping("state", "identity.state"),
    FieldMapping("zipcode", "identity.postal_code", stripped),
    FieldMapping("country", "identity.country"),
)

TYPE_COLUMN_VALUES = {
    "password": CipherType.login,
    "credit_card": CipherType.card,
    "identity": CipherType.identity,
    "note": CipherType.secure_note,
}

CARD_BRANDS = (
    ("Visa", re.compile(r"^4")),
    ("Mastercard", re.compile(r"^(5[1-5]|2[2-7])")),
    ("Amex", re.compile(r"^3[47]")),
    ("Discover", re.compile(r"^(6011|65|64[4-9])")),
)


def card_brand(number: str | None) -> str | None:
    if not number:
        return None
    digits = re.sub(r"\D", "", number)
    return next((brand for brand, pattern in CARD_BRANDS if pattern.match(digits)), None)


def classify(row: dict[str, str]) -> CipherType | None:
    """Pick the cipher kind from the ``type`` column, or from which columns are filled."""
    row_type = (row.get("type") or "").strip().lower()
    if row_type:
        if row_type not in TYPE_COLUMN_VALUES:
            raise ValueError(f"Unsupported record type '{row_type}'")
        return TYPE_COLUMN_VALUES[row_type]

    if text(row.get("url")) or text(row.get("username")) or text(row.get("password")):
        return CipherType.login
    if text(row.get("cardnumber")):
        return CipherType.card
    if text(row.get("full_name")):
        return CipherType.identity
    if text(row.get("note")):
        return CipherType.secure_note
    return None


@registry.register("nordpasscsv", "NordPass (csv)")
class NordPassCsvImporter(ImporterBase):
    FORMAT_NAME = "NordPass CSV"
    ROW_ERROR_POLICY = RowErrorPolicy.skip

    async def parse(self, data: str | bytes) -> ImportResult:
        rows = self.read_csv(self.decode(data), REQUIRED_HEADERS)
        result = ImportResult()

        for row_num, row in enumerate(rows, start=2):
            if (row.get("type") or "").strip().lower() == "folder":
                self.process_folder(result, row.get("name"), add_relationship=False)
                continue
            try:
                cipher = self._parse_row(row)
            except ValueError as exc:
                self.row_failed(result, row_num, exc)
                continue
            self.add_cipher(result, cipher, folder=row.get("folder"))

        return self.finalize(result)

    def _parse_row(self, row: dict[str, str]) -> CipherEntry:
        cipher_type = classify(row)
        if cipher_type is None:
            raise ValueError("record has no recognizable content")

        cipher = CipherEntry(type=cipher_type)
        apply_mappings(row, COMMON_FIELDS, cipher)

        match cipher_type:
            case CipherType.login:
                cipher.login = LoginData()
                apply_mappings(row, LOGIN_FIELDS, cipher)
                urls = [row.get("url", "")]
                urls.extend((row.get("additional_urls") or "").split(","))
                cipher.login.uris = uri_list(urls)
            case CipherType.card:
                cipher.card = CardData()
                apply_mappings(row, CARD_FIELDS, cipher)
                cipher.card.brand = card_brand(cipher.card.number)
                self.set_card_expiration(cipher, row.get("expirydate"))
                self.process_kvp(cipher, "PIN", row.get("pin"), FieldType.hidden)
            case CipherType.identity:
                cipher.identity = IdentityData()
                apply_mappings(row, IDENTITY_FIELDS, cipher)
                self._process_full_name(cipher.identity, row.get("full_name"))
            case CipherType.secure_note:
                cipher.secure_note = SecureNoteData()
        return cipher

    def _process_full_name(self, identity: IdentityData, full_name: str | None) -> None:
        parts = (full_name or "").split()
        if not parts:
            return
        identity.first_name = parts[0]
        if len(parts) >= 2:
            identity.last_name = parts[-1]
        if len(parts) >= 3:
            identity.middle_name = " ".join(parts[1:-1])
