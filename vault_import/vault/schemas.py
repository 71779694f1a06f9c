from pydantic import BaseModel, Field

from vault_import.vault.models import CipherRepromptType, CipherType, FieldType, SecureNoteType


class LoginUri(BaseModel):
    uri: str


class LoginData(BaseModel):
    username: str | None = None
    password: str | None = None
    totp: str | None = None
    uris: list[LoginUri] = Field(default_factory=list)


class CardData(BaseModel):
    cardholder_name: str | None = None
    brand: str | None = None
    number: str | None = None
    exp_month: str | None = None
    exp_year: str | None = None
    code: str | None = None


class IdentityData(BaseModel):
    title: str | None = None
    first_name: str | None = None
    middle_name: str | None = None
    last_name: str | None = None
    address1: str | None = None
    address2: str | None = None
    address3: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None
    company: str | None = None
    email: str | None = None
    phone: str | None = None
    ssn: str | None = None
    username: str | None = None
    passport_number: str | None = None
    license_number: str | None = None


class SecureNoteData(BaseModel):
    type: SecureNoteType = SecureNoteType.generic


class CustomField(BaseModel):
    name: str
    value: str | None = None
    type: FieldType = FieldType.text


class CipherEntry(BaseModel):
    type: CipherType = CipherType.login
    name: str | None = None
    notes: str | None = None
    favorite: bool = False
    reprompt: CipherRepromptType = CipherRepromptType.none
    login: LoginData | None = None
    card: CardData | None = None
    identity: IdentityData | None = None
    secure_note: SecureNoteData | None = None
    fields: list[CustomField] = Field(default_factory=list)


class FolderEntry(BaseModel):
    name: str = Field(min_length=1)
    id: str | None = None


class CollectionEntry(BaseModel):
    name: str = Field(min_length=1)
    organization_id: str | None = None
    id: str | None = None


class ExistingFolder(BaseModel):
    id: str
    name: str


class ExistingCollection(BaseModel):
    id: str
    name: str
    organization_id: str


class KeyValuePair(BaseModel):
    key: int
    value: int
