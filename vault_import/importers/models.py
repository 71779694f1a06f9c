from enum import IntEnum, StrEnum


class RowErrorPolicy(StrEnum):
    skip = "skip"
    fail_fast = "fail_fast"


class KdfType(IntEnum):
    pbkdf2_sha256 = 0
    argon2id = 1
