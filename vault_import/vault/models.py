from enum import IntEnum


class CipherType(IntEnum):
    login = 1
    secure_note = 2
    card = 3
    identity = 4


class SecureNoteType(IntEnum):
    generic = 0


class FieldType(IntEnum):
    text = 0
    hidden = 1
    boolean = 2
    linked = 3


class CipherRepromptType(IntEnum):
    none = 0
    password = 1
