import json

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from vault_import.exceptions import MalformedInputError
from vault_import.importers.base import ImporterBase
from vault_import.importers.mapping import FieldMapping, apply_mappings, uri_list
from vault_import.importers.models import RowErrorPolicy
from vault_import.importers.registry import registry
from vault_import.importers.schemas import ImportResult

FIELDS = (
    FieldMapping("website", "name"),
    FieldMapping("username", "login.username"),
    FieldMapping("password", "login.password"),
    FieldMapping("message", "notes"),
)


class PasskyPassword(BaseModel):
    website: str | None = None
    username: str | None = None
    password: str | None = None
    message: str | None = None


class PasskyExport(BaseModel):
    encrypted: bool = False
    passwords: list[PasskyPassword] | None = None


@registry.register("passkyjson", "Passky (json)")
class PasskyJsonImporter(ImporterBase):
    FORMAT_NAME = "Passky JSON"
    ROW_ERROR_POLICY = RowErrorPolicy.fail_fast

    async def parse(self, data: str | bytes) -> ImportResult:
        try:
            export = PasskyExport.model_validate(json.loads(self.decode(data)))
        except json.JSONDecodeError as exc:
            raise MalformedInputError(self.FORMAT_NAME, f"invalid JSON: {exc.msg}") from exc
        except PydanticValidationError as exc:
            raise MalformedInputError(self.FORMAT_NAME, f"unexpected document: {exc}") from exc

        if export.encrypted:
            raise MalformedInputError(self.FORMAT_NAME, "Unable to import an encrypted passky backup")

        result = ImportResult()
        for password in export.passwords or []:
            cipher = self.init_login_cipher()
            apply_mappings(password.model_dump(), FIELDS, cipher)
            cipher.login.uris = uri_list(password.website)
            self.add_cipher(result, cipher)

        return self.finalize(result)
