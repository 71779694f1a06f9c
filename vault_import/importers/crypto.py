"""Passphrase key derivation and encrypted-string decryption for protected exports.

Only what a password protected bundle needs: a master key derived from the
passphrase, stretched into an AES key and a MAC key, and authenticated
AES-256-CBC decryption of type 2 encrypted strings (``2.iv|data|mac``).
"""

import base64
import binascii
import hashlib
from dataclasses import dataclass

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.argon2 import Argon2id
from cryptography.hazmat.primitives.kdf.hkdf import HKDFExpand
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from vault_import.exceptions import DecryptionFailedError, InvalidEnvelopeError
from vault_import.importers.models import KdfType

KEY_LENGTH = 32
AES_CBC_256_HMAC_SHA256_B64 = 2

PBKDF2_ITERATIONS = range(5_000, 2_000_001)
ARGON2_ITERATIONS = range(2, 11)
ARGON2_MEMORY_MIB = range(16, 1025)
ARGON2_PARALLELISM = range(1, 17)


@dataclass(frozen=True)
class KdfConfig:
    kdf_type: KdfType
    iterations: int
    memory: int | None = None
    parallelism: int | None = None

    def validate(self) -> None:
        if self.kdf_type == KdfType.pbkdf2_sha256:
            if self.iterations not in PBKDF2_ITERATIONS:
                raise InvalidEnvelopeError(f"PBKDF2 iterations out of range: {self.iterations}")
            return

        if self.iterations not in ARGON2_ITERATIONS:
            raise InvalidEnvelopeError(f"Argon2id iterations out of range: {self.iterations}")
        if self.memory not in ARGON2_MEMORY_MIB:
            raise InvalidEnvelopeError(f"Argon2id memory out of range: {self.memory}")
        if self.parallelism not in ARGON2_PARALLELISM:
            raise InvalidEnvelopeError(f"Argon2id parallelism out of range: {self.parallelism}")


@dataclass(frozen=True)
class SymmetricKey:
    enc_key: bytes
    mac_key: bytes


def derive_master_key(password: str, salt: str, kdf: KdfConfig) -> bytes:
    kdf.validate()
    if kdf.kdf_type == KdfType.pbkdf2_sha256:
        pbkdf2 = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH,
            salt=salt.encode("utf-8"),
            iterations=kdf.iterations,
        )
        return pbkdf2.derive(password.encode("utf-8"))

    argon2 = Argon2id(
        salt=hashlib.sha256(salt.encode("utf-8")).digest(),
        length=KEY_LENGTH,
        iterations=kdf.iterations,
        lanes=kdf.parallelism,
        memory_cost=kdf.memory * 1024,
    )
    return argon2.derive(password.encode("utf-8"))


def stretch_key(master_key: bytes) -> SymmetricKey:
    enc_key = HKDFExpand(algorithm=hashes.SHA256(), length=KEY_LENGTH, info=b"enc").derive(
        master_key
    )
    mac_key = HKDFExpand(algorithm=hashes.SHA256(), length=KEY_LENGTH, info=b"mac").derive(
        master_key
    )
    return SymmetricKey(enc_key=enc_key, mac_key=mac_key)


def make_key(password: str, salt: str, kdf: KdfConfig) -> SymmetricKey:
    return stretch_key(derive_master_key(password, salt, kdf))


@dataclass(frozen=True)
class EncString:
    iv: bytes
    data: bytes
    mac: bytes

    @classmethod
    def parse(cls, value: str) -> "EncString":
        header, dot, body = value.partition(".")
        if not dot or header != str(AES_CBC_256_HMAC_SHA256_B64):
            raise InvalidEnvelopeError("Unsupported encrypted string type")

        pieces = body.split("|")
        if len(pieces) != 3:
            raise InvalidEnvelopeError("Encrypted string must have iv, data and mac parts")
        try:
            iv, data, mac = (base64.b64decode(piece, validate=True) for piece in pieces)
        except (binascii.Error, ValueError) as exc:
            raise InvalidEnvelopeError("Encrypted string is not valid base64") from exc
        if len(iv) != 16 or not data or len(data) % 16:
            raise InvalidEnvelopeError("Encrypted string has an invalid length")
        return cls(iv=iv, data=data, mac=mac)

    def decrypt(self, key: SymmetricKey) -> bytes:
        verifier = hmac.HMAC(key.mac_key, hashes.SHA256())
        verifier.update(self.iv + self.data)
        try:
            verifier.verify(self.mac)
        except InvalidSignature as exc:
            raise DecryptionFailedError() from exc

        decryptor = Cipher(algorithms.AES(key.enc_key), modes.CBC(self.iv)).decryptor()
        padded = decryptor.update(self.data) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        try:
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError as exc:
            raise DecryptionFailedError() from exc

    def decrypt_text(self, key: SymmetricKey) -> str:
        try:
            return self.decrypt(key).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecryptionFailedError() from exc
