"""Operaciones sobre strings (capitalizar, truncar, hash, aleatorios)."""

from __future__ import annotations

import re
import secrets

DEFAULT_CHARSET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789!@#$%^&*"

_TAG_RE = re.compile(r"<\/?([a-z]+)[^>]*>", re.IGNORECASE)


def generate_random_string(length: int, charset: str = DEFAULT_CHARSET) -> str:
    """String aleatorio criptográficamente seguro (`secrets`)."""

    if length <= 0:
        raise ValueError("Length must be a positive number")
    if not charset:
        raise ValueError("Charset cannot be empty")
    return "".join(secrets.choice(charset) for _ in range(length))


def capitalize_words(text: str, *, separator: str = " ", preserve_existing: bool = False) -> str:
    """Capitaliza cada palabra; con `preserve_existing` respeta acrónimos (TODO EN MAYÚSCULAS)."""

    if not text:
        return text

    out: list[str] = []
    for word in text.split(separator):
        if not word:
            out.append(word)
        elif preserve_existing and word == word.upper():
            out.append(word)
        else:
            out.append(word[0].upper() + word[1:].lower())
    return separator.join(out)


def truncate_string(
    text: str,
    max_length: int,
    *,
    ellipsis: str = "...",
    truncate_at_word: bool = False,
    preserve_html: bool = False,
) -> str:
    """Trunca `text` para que (sin contar tags de cierre) no supere `max_length`.

    Con `preserve_html` se cierran los tags que quedaron abiertos tras el corte.
    """

    if not text or len(text) <= max_length:
        return text

    truncated = text[: max(0, max_length - len(ellipsis))]

    if truncate_at_word:
        last_space = truncated.rfind(" ")
        if last_space > 0:
            truncated = truncated[:last_space]

    if not preserve_html:
        return truncated + ellipsis

    open_tags: list[str] = []
    for match in _TAG_RE.finditer(truncated):
        tag = match.group(1).lower()
        if match.group(0).startswith("</"):
            # cierra la apertura más reciente con ese nombre
            for idx in range(len(open_tags) - 1, -1, -1):
                if open_tags[idx] == tag:
                    del open_tags[idx]
                    break
        else:
            open_tags.append(tag)

    closing = "".join(f"</{tag}>" for tag in reversed(open_tags))
    return truncated + ellipsis + closing


def generate_hash(text: str) -> int:
    """Hash de 32 bits estilo Java (`h = h * 31 + c`) sobre code units UTF-16, en valor absoluto.

    Estable entre ejecuciones (a diferencia de `hash()`), útil para colores/buckets.
    """

    value = 0
    raw = text.encode("utf-16-le")
    for i in range(0, len(raw), 2):
        unit = raw[i] | (raw[i + 1] << 8)
        value = ((value << 5) - value + unit) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return abs(value)
