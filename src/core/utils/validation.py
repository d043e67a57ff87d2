"""Validaciones genéricas (email, vacíos)."""

from __future__ import annotations

import re
from collections.abc import Collection
from typing import Any

from pydantic import BaseModel, Field

# Chequeo grueso compartido con la capa de servicios.
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_TLD_RE = re.compile(r"\.[a-z]{2,}$", re.IGNORECASE)

DISPOSABLE_DOMAINS = frozenset(
    {
        "10minutemail.com",
        "guerrillamail.com",
        "mailinator.com",
        "tempmail.com",
        "trashmail.com",
        "yopmail.com",
    }
)


class EmailValidation(BaseModel):
    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


def validate_email(
    email: str,
    *,
    allow_disposable: bool = True,
    require_tld: bool = True,
    allow_local: bool = False,
) -> EmailValidation:
    """Valida un email y devuelve errores (bloqueantes) y warnings (informativos)."""

    errors: list[str] = []
    warnings: list[str] = []

    if not EMAIL_RE.match(email or ""):
        return EmailValidation(is_valid=False, errors=["Invalid email format"])

    local_part, domain = email.split("@", 1)

    if not local_part:
        errors.append("Local part cannot be empty")
    elif len(local_part) > 64:
        errors.append("Local part too long (max 64 characters)")

    if not domain:
        errors.append("Domain cannot be empty")
    elif len(domain) > 253:
        errors.append("Domain too long (max 253 characters)")

    if require_tld and not _TLD_RE.search(domain):
        errors.append("Domain must have a valid top-level domain")

    if not allow_local and domain.lower() == "localhost":
        errors.append("Localhost domains are not allowed")

    if not allow_disposable and domain.lower() in DISPOSABLE_DOMAINS:
        errors.append("Disposable email addresses are not allowed")

    if ".." in local_part:
        warnings.append("Consecutive dots in local part may cause issues")

    if domain.startswith(".") or domain.endswith("."):
        warnings.append("Domain should not start or end with a dot")

    return EmailValidation(is_valid=not errors, errors=errors, warnings=warnings)


def is_empty(value: Any) -> bool:
    """True para None, strings en blanco y colecciones/mapeos vacíos."""

    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, Collection):
        return len(value) == 0
    return False
