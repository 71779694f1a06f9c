class AppError(Exception):
    def __init__(self, message: str, code: str = "INTERNAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class VaultImportError(AppError):
    """Base class for every terminal error of an import call."""


class ConfigurationError(VaultImportError):
    """Raised before any I/O when the caller asked for something impossible."""


class UnknownFormatError(ConfigurationError):
    def __init__(self, format_key: str):
        self.format_key = format_key
        super().__init__(f"Unknown import format '{format_key}'", code="UNKNOWN_FORMAT")


class MissingPasswordPromptError(ConfigurationError):
    def __init__(self, format_key: str):
        self.format_key = format_key
        super().__init__(
            f"Format '{format_key}' is password protected and needs a password prompt",
            code="MISSING_PASSWORD_PROMPT",
        )


class MissingOrganizationError(ConfigurationError):
    def __init__(self, message: str = "Collections can only be imported into an organization"):
        super().__init__(message, code="MISSING_ORGANIZATION")


class OrganizationMismatchError(ConfigurationError):
    def __init__(self, importer_organization_id: str | None, organization_id: str | None):
        self.importer_organization_id = importer_organization_id
        self.organization_id = organization_id
        super().__init__(
            f"Importer was built for organization '{importer_organization_id}' "
            f"but the import targets '{organization_id}'",
            code="ORGANIZATION_MISMATCH",
        )


class InputError(VaultImportError):
    """The payload itself could not be turned into an import result."""


class MalformedInputError(InputError):
    def __init__(self, format_name: str, message: str, row: int | None = None):
        self.format_name = format_name
        self.row = row
        location = f" (row {row})" if row is not None else ""
        super().__init__(f"{format_name}: {message}{location}", code="MALFORMED_INPUT")


class InvalidEnvelopeError(InputError):
    def __init__(self, message: str):
        super().__init__(message, code="INVALID_ENVELOPE")


class DecryptionFailedError(InputError):
    def __init__(self, message: str = "Decryption failed, the password is probably wrong"):
        super().__init__(message, code="DECRYPTION_FAILED")


class PasswordPromptCancelledError(InputError):
    def __init__(self, message: str = "Password entry was cancelled"):
        super().__init__(message, code="IMPORT_CANCELLED")


class CorruptImportResultError(VaultImportError):
    """An internal invariant of the import result was violated."""

    def __init__(self, message: str):
        super().__init__(message, code="CORRUPT_IMPORT_RESULT")
