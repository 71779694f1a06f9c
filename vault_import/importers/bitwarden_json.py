import json
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from vault_import.exceptions import MalformedInputError
from vault_import.importers.base import ImporterBase
from vault_import.importers.mapping import uri_list
from vault_import.importers.models import RowErrorPolicy
from vault_import.importers.registry import registry
from vault_import.importers.schemas import ImportResult
from vault_import.vault.models import CipherRepromptType, CipherType, FieldType, SecureNoteType
from vault_import.vault.schemas import (
    CardData,
    CipherEntry,
    CustomField,
    IdentityData,
    LoginData,
    SecureNoteData,
)


class ExportModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExportFolder(ExportModel):
    id: str
    name: str | None = None


class ExportCollection(ExportModel):
    id: str
    organization_id: str | None = None
    name: str | None = None


class ExportUri(ExportModel):
    uri: str | None = None


class ExportLogin(ExportModel):
    username: str | None = None
    password: str | None = None
    totp: str | None = None
    uris: list[ExportUri] | None = None


class ExportCard(CardData):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExportIdentity(IdentityData):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExportSecureNote(ExportModel):
    type: SecureNoteType = SecureNoteType.generic


class ExportField(ExportModel):
    name: str | None = None
    value: str | None = None
    type: FieldType = FieldType.text


class ExportItem(ExportModel):
    type: CipherType
    name: str | None = None
    notes: str | None = None
    favorite: bool = False
    reprompt: CipherRepromptType = CipherRepromptType.none
    folder_id: str | None = None
    collection_ids: list[str] | None = None
    fields: list[ExportField] | None = None
    login: ExportLogin | None = None
    card: ExportCard | None = None
    identity: ExportIdentity | None = None
    secure_note: ExportSecureNote | None = None


class ExportDocument(ExportModel):
    encrypted: bool = False
    password_protected: bool = False
    folders: list[ExportFolder] | None = None
    collections: list[ExportCollection] | None = None
    items: list[dict[str, Any]] | None = None


@registry.register("bitwardenjson", "Bitwarden (json)", featured=True)
class BitwardenJsonImporter(ImporterBase):
    FORMAT_NAME = "Bitwarden JSON"
    ROW_ERROR_POLICY = RowErrorPolicy.fail_fast

    async def parse(self, data: str | bytes) -> ImportResult:
        document = self._load(data)
        if document.encrypted:
            reason = (
                "password protected export, use the password protected format"
                if document.password_protected
                else "account encrypted exports are not supported"
            )
            raise MalformedInputError(self.FORMAT_NAME, reason)

        result = ImportResult()
        groupings = (
            self._parse_collections(document, result)
            if self.organization
            else self._parse_folders(document, result)
        )

        for row_num, raw_item in enumerate(document.items or [], start=1):
            try:
                item = ExportItem.model_validate(raw_item)
            except PydanticValidationError as exc:
                self.row_failed(result, row_num, ValueError(str(exc)))
                continue

            cipher_index = len(result.ciphers)
            if self.organization:
                for collection_id in item.collection_ids or []:
                    if collection_id in groupings:
                        pair = (cipher_index, groupings[collection_id])
                        if pair not in result.collection_relationships:
                            result.collection_relationships.append(pair)
            elif item.folder_id is not None and item.folder_id in groupings:
                result.folder_relationships.append((cipher_index, groupings[item.folder_id]))

            self.add_cipher(result, self._to_cipher(item))

        return self.finalize(result)

    def _load(self, data: str | bytes) -> ExportDocument:
        try:
            return ExportDocument.model_validate(json.loads(self.decode(data)))
        except json.JSONDecodeError as exc:
            raise MalformedInputError(self.FORMAT_NAME, f"invalid JSON: {exc.msg}") from exc
        except PydanticValidationError as exc:
            raise MalformedInputError(self.FORMAT_NAME, f"unexpected document: {exc}") from exc

    def _parse_folders(self, document: ExportDocument, result: ImportResult) -> dict[str, int]:
        groupings: dict[str, int] = {}
        for folder in document.folders or []:
            index = self.process_folder(result, folder.name, add_relationship=False)
            if index is not None:
                groupings[folder.id] = index
        return groupings

    def _parse_collections(
        self, document: ExportDocument, result: ImportResult
    ) -> dict[str, int]:
        groupings: dict[str, int] = {}
        for collection in document.collections or []:
            index = self.process_collection(result, collection.name, add_relationship=False)
            if index is not None:
                groupings[collection.id] = index
        return groupings

    def _to_cipher(self, item: ExportItem) -> CipherEntry:
        cipher = CipherEntry(
            type=item.type,
            name=item.name,
            notes=item.notes,
            favorite=item.favorite,
            reprompt=item.reprompt,
            fields=[
                CustomField(name=f.name or "", value=f.value, type=f.type)
                for f in item.fields or []
            ],
        )
        match item.type:
            case CipherType.login:
                login = item.login or ExportLogin()
                cipher.login = LoginData(
                    username=login.username,
                    password=login.password,
                    totp=login.totp,
                    uris=uri_list(u.uri for u in login.uris or []),
                )
            case CipherType.card:
                cipher.card = CardData.model_validate((item.card or ExportCard()).model_dump())
            case CipherType.identity:
                cipher.identity = IdentityData.model_validate(
                    (item.identity or ExportIdentity()).model_dump()
                )
            case CipherType.secure_note:
                cipher.secure_note = SecureNoteData(
                    type=(item.secure_note or ExportSecureNote()).type
                )
        return cipher
