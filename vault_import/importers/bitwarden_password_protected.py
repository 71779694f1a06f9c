import json
from collections.abc import Awaitable, Callable

import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from vault_import.exceptions import (
    InvalidEnvelopeError,
    PasswordPromptCancelledError,
    VaultImportError,
)
from vault_import.importers.base import Importer
from vault_import.importers.crypto import EncString, KdfConfig, make_key
from vault_import.importers.models import KdfType
from vault_import.importers.schemas import ImportResult

logger = structlog.get_logger()

PasswordPrompt = Callable[[], Awaitable[str]]


class PasswordProtectedEnvelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    encrypted: bool
    password_protected: bool = Field(alias="passwordProtected")
    salt: str = Field(min_length=1)
    kdf_type: KdfType = Field(default=KdfType.pbkdf2_sha256, alias="kdfType")
    kdf_iterations: int = Field(alias="kdfIterations")
    kdf_memory: int | None = Field(default=None, alias="kdfMemory")
    kdf_parallelism: int | None = Field(default=None, alias="kdfParallelism")
    enc_key_validation: str = Field(alias="encKeyValidation_DO_NOT_EDIT")
    data: str

    @property
    def kdf(self) -> KdfConfig:
        return KdfConfig(
            kdf_type=self.kdf_type,
            iterations=self.kdf_iterations,
            memory=self.kdf_memory,
            parallelism=self.kdf_parallelism,
        )


class PasswordProtectedImporter:
    """Decrypts a password protected export, then hands the plaintext to ``inner``.

    The prompt is awaited once per ``parse`` call and never cached, so every
    import attempt asks again.
    """

    def __init__(self, inner: Importer, password_prompt: PasswordPrompt) -> None:
        self._inner = inner
        self._password_prompt = password_prompt

    @property
    def inner(self) -> Importer:
        return self._inner

    @property
    def organization_id(self) -> str | None:
        return self._inner.organization_id

    @property
    def FORMAT_NAME(self) -> str:
        return f"{self._inner.FORMAT_NAME} (password protected)"

    async def parse(self, data: str | bytes) -> ImportResult:
        document = self._load_document(data)
        if not document.get("passwordProtected") and not document.get("encrypted"):
            logger.info("password_protected_plain_payload")
            return await self._inner.parse(data)

        envelope = self._parse_envelope(document)
        password = await self._prompt()

        key = make_key(password, envelope.salt, envelope.kdf)
        EncString.parse(envelope.enc_key_validation).decrypt(key)
        plaintext = EncString.parse(envelope.data).decrypt_text(key)
        logger.info("password_protected_payload_decrypted", kdf_type=envelope.kdf_type.name)

        return await self._inner.parse(plaintext)

    def _load_document(self, data: str | bytes) -> dict:
        if isinstance(data, str):
            data = data.removeprefix("\ufeff")
        try:
            document = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise InvalidEnvelopeError("Export is not valid JSON") from exc
        if not isinstance(document, dict):
            raise InvalidEnvelopeError("Export must be a JSON object")
        return document

    def _parse_envelope(self, document: dict) -> PasswordProtectedEnvelope:
        if not document.get("passwordProtected"):
            raise InvalidEnvelopeError("Export is encrypted with an account key, not a password")
        try:
            envelope = PasswordProtectedEnvelope.model_validate(document)
        except PydanticValidationError as exc:
            raise InvalidEnvelopeError(f"Invalid password protected envelope: {exc}") from exc
        for field_name in ("enc_key_validation", "data"):
            EncString.parse(getattr(envelope, field_name))
        envelope.kdf.validate()
        return envelope

    async def _prompt(self) -> str:
        try:
            password = await self._password_prompt()
        except VaultImportError:
            raise
        except Exception as exc:
            logger.info("password_prompt_rejected", reason=str(exc))
            raise PasswordPromptCancelledError() from exc
        if not password:
            raise PasswordPromptCancelledError()
        return password
