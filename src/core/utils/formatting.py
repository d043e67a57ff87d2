"""Formateo de fechas y números.

Por qué sin librerías de i18n:
- Solo necesitamos dos idiomas (en/es) y formatos cortos/largos estables.
- Mantiene `core` sin dependencias de locale del sistema (strftime + setlocale
  no es thread-safe y cambia según la máquina).
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Literal, Sequence

DateFormat = Literal["relative", "short", "long", "iso"]
NumberStyle = Literal["decimal", "currency", "percent"]

_MONTHS = {
    "en": (
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    ),
    "es": (
        "enero", "febrero", "marzo", "abril", "mayo", "junio",
        "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
    ),
}

_CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "JPY": "¥"}


def _coerce_datetime(value: datetime | date | int | float | str) -> datetime:
    if isinstance(value, bool):
        raise ValueError("Invalid date provided")
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise ValueError("Invalid date provided") from exc
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValueError("Invalid date provided") from exc
    raise ValueError("Invalid date provided")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'} ago"


def _language(locale: str) -> str:
    return locale.replace("_", "-").split("-", 1)[0].lower()


def to_iso_timestamp(value: datetime) -> str:
    """Texto de timestamp estándar del wire: UTC con milisegundos y sufijo Z.

    Los datetimes naive se interpretan como UTC.
    """

    utc = _as_utc(value)
    return f"{utc:%Y-%m-%dT%H:%M:%S}.{utc.microsecond // 1000:03d}Z"


def format_date(
    value: datetime | date | int | float | str,
    fmt: DateFormat = "relative",
    locale: str = "en-US",
    *,
    now: datetime | None = None,
) -> str:
    """Formatea una fecha.

    Acepta datetime/date, epoch en segundos o texto ISO 8601. Lanza
    `ValueError("Invalid date provided")` si no se puede interpretar.
    """

    moment = _coerce_datetime(value)

    if fmt == "relative":
        reference = _as_utc(now) if now is not None else datetime.now(timezone.utc)
        diff_seconds = (reference - _as_utc(moment)).total_seconds()
        minutes = int(diff_seconds // 60)
        hours = int(diff_seconds // 3600)
        days = int(diff_seconds // 86400)

        if minutes < 1:
            return "just now"
        if minutes < 60:
            return _plural(minutes, "minute")
        if hours < 24:
            return _plural(hours, "hour")
        if days < 7:
            return _plural(days, "day")
        if days < 30:
            return _plural(days // 7, "week")
        if days < 365:
            return _plural(days // 30, "month")
        return _plural(days // 365, "year")

    if fmt == "iso":
        return to_iso_timestamp(moment)

    lang = _language(locale)
    if fmt == "long":
        months = _MONTHS.get(lang, _MONTHS["en"])
        month = months[moment.month - 1]
        if lang == "es":
            return f"{moment.day} de {month} de {moment.year}"
        return f"{month} {moment.day}, {moment.year}"

    # short (y cualquier formato desconocido)
    if locale.replace("_", "-").lower() == "en-us":
        return f"{moment.month}/{moment.day}/{moment.year}"
    return f"{moment.day}/{moment.month}/{moment.year}"


def format_number(
    num: float,
    *,
    precision: int = 1,
    units: Sequence[str] = ("", "K", "M", "B", "T"),
    style: NumberStyle = "decimal",
    currency: str = "USD",
) -> str:
    """Formatea un número con sufijo de magnitud (K, M, B, T)."""

    if num == 0:
        return "0"

    sign = "-" if num < 0 else ""
    scaled = abs(num)
    unit_index = 0
    while scaled >= 1000 and unit_index < len(units) - 1:
        scaled /= 1000
        unit_index += 1

    unit = units[unit_index] if units else ""
    if style == "currency":
        symbol = _CURRENCY_SYMBOLS.get(currency.upper(), f"{currency.upper()} ")
        return f"{sign}{symbol}{scaled:,.{precision}f}{unit}"
    if style == "percent":
        return f"{sign}{scaled * 100:.{precision}f}{unit}"
    return f"{sign}{scaled:.{precision}f}{unit}"
