"""Utilidades genéricas sin estado.

Por qué un paquete:
- Cada función es independiente (sin I/O); se agrupan por tema.
- La CLI y la capa de servicios las importan desde aquí.
"""

from core.utils.cloning import deep_clone
from core.utils.formatting import format_date, format_number, to_iso_timestamp
from core.utils.strings import (
    capitalize_words,
    generate_hash,
    generate_random_string,
    truncate_string,
)
from core.utils.timing import Debounced, Throttled, debounce, throttle
from core.utils.validation import EMAIL_RE, EmailValidation, is_empty, validate_email

__all__ = [
    "EMAIL_RE",
    "Debounced",
    "EmailValidation",
    "Throttled",
    "capitalize_words",
    "debounce",
    "deep_clone",
    "format_date",
    "format_number",
    "generate_hash",
    "generate_random_string",
    "is_empty",
    "throttle",
    "to_iso_timestamp",
    "truncate_string",
    "validate_email",
]
