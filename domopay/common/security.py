"""Password hashing and API key generation."""

import secrets

import bcrypt

DEFAULT_HASH_ROUNDS = 8


def hash_password(plaintext: str, rounds: int = DEFAULT_HASH_ROUNDS) -> str:
    return bcrypt.hashpw(plaintext.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def check_password(plaintext: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(plaintext.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


def generate_api_key() -> str:
    return secrets.token_hex(20)
