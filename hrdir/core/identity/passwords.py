from __future__ import annotations

import secrets
from typing import Any, Optional

from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from hrdir.core.config.models import PasswordsConfigFile
from hrdir.core.errors import InvalidCredentialFormatError
from hrdir.core.identity.models import KdfParams, PasswordDigest


def _scrypt_hash(password: str, salt: bytes, n: int = 2**14, r: int = 8, p: int = 1) -> bytes:
    kdf = Scrypt(salt=salt, length=32, n=n, r=r, p=p)
    return kdf.derive(password.encode("utf-8"))


def require_password(password: Any) -> str:
    if not isinstance(password, str) or password == "":
        raise InvalidCredentialFormatError()
    return password


def hash_password(password: str, cfg: Optional[PasswordsConfigFile] = None) -> PasswordDigest:
    cfg = cfg or PasswordsConfigFile()
    password = require_password(password)
    salt = secrets.token_bytes(int(cfg.salt_bytes))
    digest = _scrypt_hash(password, salt, n=cfg.n, r=cfg.r, p=cfg.p)
    return PasswordDigest(salt=salt.hex(), digest=digest.hex(), kdf=KdfParams(n=cfg.n, r=cfg.r, p=cfg.p))


def verify_password(password: str, stored: PasswordDigest) -> bool:
    salt = bytes.fromhex(stored.salt)
    expected = bytes.fromhex(stored.digest)
    kdf = stored.kdf
    digest = _scrypt_hash(password, salt, n=kdf.n, r=kdf.r, p=kdf.p)
    return secrets.compare_digest(digest, expected)
