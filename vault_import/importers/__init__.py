from vault_import.importers.base import Importer, ImporterBase
from vault_import.importers.bitwarden_csv import BitwardenCsvImporter
from vault_import.importers.bitwarden_json import BitwardenJsonImporter
from vault_import.importers.bitwarden_password_protected import PasswordProtectedImporter
from vault_import.importers.chrome_csv import ChromeCsvImporter
from vault_import.importers.keepass2_xml import KeePass2XmlImporter
from vault_import.importers.nordpass_csv import NordPassCsvImporter
from vault_import.importers.passky_json import PasskyJsonImporter
from vault_import.importers.passwordsafe_xml import PasswordSafeXmlImporter
from vault_import.importers.registry import ImporterRegistry, registry
from vault_import.importers.roboform_csv import RoboFormCsvImporter
from vault_import.importers.service import ImportService

registry.register_protected(
    "bitwardenpasswordprotected",
    "Bitwarden (password protected)",
    base_format="bitwardenjson",
    featured=True,
)

__all__ = [
    "BitwardenCsvImporter",
    "BitwardenJsonImporter",
    "ChromeCsvImporter",
    "ImportService",
    "Importer",
    "ImporterBase",
    "ImporterRegistry",
    "KeePass2XmlImporter",
    "NordPassCsvImporter",
    "PasskyJsonImporter",
    "PasswordProtectedImporter",
    "PasswordSafeXmlImporter",
    "RoboFormCsvImporter",
    "registry",
]
