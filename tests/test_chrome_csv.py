from vault_import.importers import ChromeCsvImporter
from vault_import.importers.chrome_csv import name_from_url


class TestChromeCsv:
    async def test_parses_logins(self, load_fixture):
        result = await ChromeCsvImporter().parse(load_fixture("chrome.csv"))

        assert len(result.ciphers) == 3
        first = result.ciphers[0]
        assert first.name == "example.com"
        assert first.login.username == "alice"
        assert first.login.password == "s3cret"
        assert first.login.uris[0].uri == "https://example.com/login"

    async def test_missing_name_falls_back_to_host(self, load_fixture):
        result = await ChromeCsvImporter().parse(load_fixture("chrome.csv"))

        assert result.ciphers[1].name == "github.com"
        assert result.ciphers[1].notes == "work account"

    async def test_android_urls_become_app_uris(self, load_fixture):
        result = await ChromeCsvImporter().parse(load_fixture("chrome.csv"))

        bank = result.ciphers[2]
        assert bank.name == "Bank App"
        assert bank.login.uris[0].uri == "androidapp://com.example.bank"

    async def test_blank_rows_are_skipped(self, load_fixture):
        result = await ChromeCsvImporter().parse(load_fixture("chrome.csv"))

        assert len(result.skipped_rows) == 1
        assert result.skipped_rows[0].row == 5

    async def test_android_package_used_when_name_missing(self):
        data = "name,url,username,password\n,android://hash@com.example.app/,bob,pw\n"

        result = await ChromeCsvImporter().parse(data)

        assert result.ciphers[0].name == "com.example.app"


def test_name_from_url_strips_www():
    assert name_from_url("https://www.example.org/path") == "example.org"
    assert name_from_url("example.net") == "example.net"
