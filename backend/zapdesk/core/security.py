"""Helpers de credenciales y enmascaramiento para logs."""

import hmac


def constant_time_equals(candidate: str | None, expected: str | None) -> bool:
    """Compara credenciales sin filtrar información por tiempo de respuesta.

    Un valor esperado vacío nunca es válido, así un `LOGIN` sin definir no
    permite autenticarse con un usuario vacío.
    """
    if not expected or candidate is None:
        return False
    return hmac.compare_digest(candidate.encode(), expected.encode())


def mask_secret(value: str | None) -> str | None:
    """Enmascara secretos para logging seguro."""
    if not value:
        return value
    if len(value) <= 4:
        return "***"
    return f"{value[:2]}***{value[-2:]}"
