"""Password hashing helpers."""

import bcrypt

MIN_PASSWORD_LENGTH = 6


def get_password_hash(password: str) -> str:
    salt = bcrypt.gensalt(rounds=10)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")
