import re
from urllib.parse import urlsplit

from vault_import.importers.base import ImporterBase
from vault_import.importers.mapping import FieldMapping, apply_mappings, text, uri_list
from vault_import.importers.models import RowErrorPolicy
from vault_import.importers.registry import registry
from vault_import.importers.schemas import ImportResult
from vault_import.vault.schemas import CipherEntry, LoginUri

REQUIRED_HEADERS = ("name", "url", "username", "password")

FIELDS = (
    FieldMapping("name", "name"),
    FieldMapping("username", "login.username"),
    FieldMapping("password", "login.password"),
    FieldMapping("note", "notes"),
)

ANDROID_URL_RE = re.compile(r"^android://.*@([^/]+)/?$")


def name_from_url(url: str) -> str | None:
    host = urlsplit(url if "://" in url else f"http://{url}").hostname
    if host is None:
        return None
    return host.removeprefix("www.")


@registry.register("chromecsv", "Chrome (csv)")
class ChromeCsvImporter(ImporterBase):
    """Chrome, Edge and other Chromium password exports."""

    FORMAT_NAME = "Chrome CSV"
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
            self.add_cipher(result, cipher)

        return self.finalize(result)

    def _parse_row(self, row: dict[str, str]) -> CipherEntry:
        url = (row.get("url") or "").strip()
        if not url and text(row.get("password")) is None and text(row.get("username")) is None:
            raise ValueError("record has no url, username or password")

        cipher = self.init_login_cipher()
        apply_mappings(row, FIELDS, cipher)

        android = ANDROID_URL_RE.match(url)
        if android is not None:
            package = android.group(1)
            cipher.login.uris = [LoginUri(uri=f"androidapp://{package}")]
            cipher.name = cipher.name or package
        else:
            cipher.login.uris = uri_list(url)
            if cipher.name is None and url:
                cipher.name = name_from_url(url)
        return cipher
