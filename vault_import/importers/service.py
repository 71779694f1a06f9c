import structlog

from vault_import.config import Settings, settings
from vault_import.exceptions import (
    MalformedInputError,
    MissingOrganizationError,
    OrganizationMismatchError,
)
from vault_import.importers.base import Importer
from vault_import.importers.bitwarden_password_protected import PasswordPrompt
from vault_import.importers.registry import ImporterRegistry, registry
from vault_import.importers.resolver import RelationshipResolver
from vault_import.importers.schemas import ImportResult, ImportSummary
from vault_import.importers.target import ImportTargetMerger
from vault_import.vault.models import CipherType
from vault_import.vault.repository import VaultRepository
from vault_import.vault.schemas import CipherEntry

logger = structlog.get_logger()


def _looks_unparsed(cipher: CipherEntry) -> bool:
    return (
        cipher.name == "--"
        and cipher.type == CipherType.login
        and cipher.login is not None
        and not (cipher.login.password or "").strip()
    )


def is_bad_data(result: ImportResult) -> bool:
    """Sample the first, middle and last cipher; all of them empty means a wrong format."""
    if not result.ciphers:
        return False
    count = len(result.ciphers)
    samples = {0, count // 2, count - 1}
    return all(_looks_unparsed(result.ciphers[i]) for i in samples)


class ImportService:
    def __init__(
        self,
        repository: VaultRepository,
        registry: ImporterRegistry = registry,
        settings: Settings = settings,
    ) -> None:
        self._repository = repository
        self._registry = registry
        self._settings = settings
        self._merger = ImportTargetMerger(repository)
        self._resolver = RelationshipResolver()

    def get_importer(
        self,
        format_key: str,
        password_prompt: PasswordPrompt | None = None,
        organization_id: str | None = None,
    ) -> Importer:
        return self._registry.get_importer(format_key, password_prompt, organization_id)

    async def import_data(
        self,
        importer: Importer,
        data: str | bytes,
        organization_id: str | None = None,
        import_target: str = "",
    ) -> ImportSummary:
        """Parse ``data`` and hand the resolved batch to the repository exactly once.

        ``organization_id`` defaults to the importer's own organization and must
        match it when given. Any error raised here leaves the vault untouched.
        """
        if organization_id is None:
            organization_id = importer.organization_id
        elif organization_id != importer.organization_id:
            raise OrganizationMismatchError(importer.organization_id, organization_id)

        format_name = importer.FORMAT_NAME
        if isinstance(data, str):
            size = len(data.encode("utf-8", errors="surrogatepass"))
        else:
            size = len(data)
        if size > self._settings.max_payload_bytes:
            raise MalformedInputError(
                format_name,
                f"payload of {size} bytes exceeds the {self._settings.max_payload_bytes} byte limit",
            )

        result = await importer.parse(data)

        if result.collections and organization_id is None:
            raise MissingOrganizationError()
        if not result.ciphers and not result.folders and not result.collections:
            raise MalformedInputError(format_name, "nothing to import")
        if is_bad_data(result):
            raise MalformedInputError(
                format_name, "no usable records found, the file is probably a different format"
            )

        await self._merger.set_import_target(result, organization_id, import_target)
        batch = self._resolver.resolve(result, organization_id)

        await self._repository.import_batch(
            ciphers=batch.ciphers,
            folders=batch.folders,
            collections=batch.collections,
            folder_relationships=batch.folder_relationships,
            collection_relationships=batch.collection_relationships,
            organization_id=organization_id,
        )

        logger.info(
            "import_completed",
            format=format_name,
            ciphers=len(batch.ciphers),
            folders=len(batch.folders),
            collections=len(batch.collections),
            skipped=len(result.skipped_rows),
        )
        return ImportSummary(
            format=format_name,
            cipher_count=len(batch.ciphers),
            folder_count=len(batch.folders),
            collection_count=len(batch.collections),
            skipped_rows=result.skipped_rows,
        )
