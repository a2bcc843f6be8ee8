"""Хеширование паролей пользователей (bcrypt)."""

import bcrypt


def hash_password(password: str, rounds: int = 12) -> str:
    """Хеширует пароль bcrypt с заданной стоимостью."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")
