"""Registry mapping import format keys to format parsers."""

from collections.abc import Callable
from dataclasses import dataclass

import structlog

from vault_import.exceptions import MissingPasswordPromptError, UnknownFormatError
from vault_import.importers.base import Importer, ImporterBase
from vault_import.importers.bitwarden_password_protected import (
    PasswordPrompt,
    PasswordProtectedImporter,
)
from vault_import.importers.schemas import ImportOption

logger = structlog.get_logger()

ImporterClass = type[ImporterBase]


@dataclass(frozen=True)
class ImporterDefinition:
    option: ImportOption
    importer_cls: ImporterClass | None = None


class ImporterRegistry:
    """Central registry for all supported export formats."""

    def __init__(self) -> None:
        self._definitions: dict[str, ImporterDefinition] = {}

    def register(
        self, format_key: str, name: str, featured: bool = False
    ) -> Callable[[ImporterClass], ImporterClass]:
        """Decorator to register a format parser class."""

        def decorator(cls: ImporterClass) -> ImporterClass:
            self._definitions[format_key] = ImporterDefinition(
                option=ImportOption(id=format_key, name=name, featured=featured),
                importer_cls=cls,
            )
            return cls

        return decorator

    def register_protected(
        self, format_key: str, name: str, base_format: str, featured: bool = False
    ) -> None:
        """Declare a password protected variant of an already registered format."""
        if base_format not in self._definitions:
            raise UnknownFormatError(base_format)
        self._definitions[format_key] = ImporterDefinition(
            option=ImportOption(
                id=format_key,
                name=name,
                featured=featured,
                password_protected=True,
                base_format=base_format,
            ),
        )

    def options(self) -> list[ImportOption]:
        """Return all formats, featured ones first, the rest sorted by name."""
        options = [d.option for d in self._definitions.values()]
        featured = [o for o in options if o.featured]
        regular = sorted((o for o in options if not o.featured), key=lambda o: o.name.lower())
        return featured + regular

    def get_importer(
        self,
        format_key: str,
        password_prompt: PasswordPrompt | None = None,
        organization_id: str | None = None,
    ) -> Importer:
        definition = self._definitions.get(format_key)
        if definition is None:
            raise UnknownFormatError(format_key)

        option = definition.option
        if not option.password_protected:
            return definition.importer_cls(organization_id=organization_id)

        if password_prompt is None:
            raise MissingPasswordPromptError(format_key)
        inner = self.get_importer(option.base_format, organization_id=organization_id)
        logger.debug("importer_wrapped", format=format_key, base_format=option.base_format)
        return PasswordProtectedImporter(inner, password_prompt)


registry = ImporterRegistry()
