# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.

import os
from functools import lru_cache

from cryptography.fernet import Fernet
from sqlalchemy.types import Text, TypeDecorator

import app.config  # noqa: F401  (loads .env)


@lru_cache(maxsize=1)
def get_fernet() -> Fernet:
    """
    Builds the Fernet cipher from FERNET_SECRET on first use, so importing the
    models never requires the secret (reset scripts, schema tooling).
    """
    secret = os.getenv("FERNET_SECRET")
    if not secret:
        raise EnvironmentError("FERNET_SECRET is missing. Please set it in your environment or .env file.")
    try:
        return Fernet(secret)
    except Exception as e:
        raise ValueError("FERNET_SECRET is invalid. Make sure it is a valid 32-byte base64 string.") from e


def encrypt_text(plain: str) -> str:
    return get_fernet().encrypt(plain.encode("utf-8")).decode("ascii")


def decrypt_text(token: str) -> str:
    return get_fernet().decrypt(token.encode("ascii")).decode("utf-8")


class EncryptedText(TypeDecorator):
    """Text column stored as a Fernet token, returned as plain text."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else encrypt_text(value)

    def process_result_value(self, value, dialect):
        return None if value is None else decrypt_text(value)
