"""Generic utilities: dates, numbers, strings, email, emptiness, cloning, timing.

Invariants:
    - format_date accepts datetime/date/epoch seconds/ISO text; anything else
      raises ValueError("Invalid date provided")
    - Naive datetimes are treated as UTC
    - generate_hash is stable across runs (Java-style 32-bit, absolute value)
    - truncate_string with preserve_html closes the tags the cut left open
    - debounce fires once with the last arguments; throttle drops calls inside the window
"""

import asyncio
from datetime import date, datetime, timedelta

import pytest

from core.domain.models import FilterParams, UserStatus
from core.utils import (
    capitalize_words,
    debounce,
    deep_clone,
    format_date,
    format_number,
    generate_hash,
    generate_random_string,
    is_empty,
    throttle,
    to_iso_timestamp,
    truncate_string,
    validate_email,
)
from core.utils.strings import DEFAULT_CHARSET

from helpers import FIXED_NOW


# ==============================================================================
# format_date
# ==============================================================================


@pytest.mark.parametrize(
    ("delta", "expected"),
    [
        (timedelta(seconds=30), "just now"),
        (timedelta(minutes=1), "1 minute ago"),
        (timedelta(minutes=5), "5 minutes ago"),
        (timedelta(hours=3), "3 hours ago"),
        (timedelta(days=2), "2 days ago"),
        (timedelta(days=14), "2 weeks ago"),
        (timedelta(days=60), "2 months ago"),
        (timedelta(days=800), "2 years ago"),
    ],
)
def test_relative_buckets(delta, expected):
    assert format_date(FIXED_NOW - delta, "relative", now=FIXED_NOW) == expected


def test_long_format_english_and_spanish():
    moment = datetime(2024, 1, 15, 10, 30)

    assert format_date(moment, "long") == "January 15, 2024"
    assert format_date(moment, "long", "es-ES") == "15 de enero de 2024"


def test_short_format_depends_on_locale():
    moment = date(2024, 1, 15)

    assert format_date(moment, "short") == "1/15/2024"
    assert format_date(moment, "short", "en-GB") == "15/1/2024"


def test_iso_format_from_text_and_epoch():
    assert format_date("2024-01-15T10:30:00Z", "iso") == "2024-01-15T10:30:00.000Z"
    assert format_date(0, "iso") == "1970-01-01T00:00:00.000Z"


def test_to_iso_timestamp_treats_naive_as_utc():
    assert to_iso_timestamp(datetime(2024, 3, 1, 8, 5, 9, 123456)) == "2024-03-01T08:05:09.123Z"


@pytest.mark.parametrize("value", ["not a date", True, object()])
def test_invalid_dates_raise(value):
    with pytest.raises(ValueError, match="Invalid date provided"):
        format_date(value)


# ==============================================================================
# format_number
# ==============================================================================


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (0, "0"),
        (999, "999.0"),
        (1234, "1.2K"),
        (1_500_000, "1.5M"),
        (-2500, "-2.5K"),
        (3_200_000_000, "3.2B"),
    ],
)
def test_format_number_units(value, expected):
    assert format_number(value) == expected


def test_format_number_currency_and_percent():
    assert format_number(1500, style="currency") == "$1.5K"
    assert format_number(12, precision=2, style="currency", currency="EUR") == "€12.00"
    assert format_number(0.256, style="percent") == "25.6"


# ==============================================================================
# Strings
# ==============================================================================


def test_generate_hash_known_values():
    assert generate_hash("") == 0
    assert generate_hash("a") == 97
    assert generate_hash("ab") == 3105
    assert generate_hash("hello") == 99162322


def test_generate_hash_is_never_negative():
    assert all(generate_hash(word) >= 0 for word in ["polygenelubricants", "zzzzzzzz", "userdesk"])


def test_truncate_plain_and_at_word():
    assert truncate_string("Hello world", 20) == "Hello world"
    assert truncate_string("Hello world", 8) == "Hello..."
    assert truncate_string("The quick brown fox", 12, truncate_at_word=True) == "The..."
    assert truncate_string("Hello world", 6, ellipsis="…") == "Hello…"


def test_truncate_preserves_html_tags():
    assert truncate_string("<b>Hello world</b>", 10, preserve_html=True) == "<b>Hell...</b>"
    assert truncate_string("<i>a</i> <b>bcdefgh</b>", 16, preserve_html=True) == "<i>a</i> <b>b...</b>"


def test_capitalize_words():
    assert capitalize_words("hello WORLD") == "Hello World"
    assert capitalize_words("hello NASA team", preserve_existing=True) == "Hello NASA Team"
    assert capitalize_words("foo-bar", separator="-") == "Foo-Bar"
    assert capitalize_words("") == ""


def test_generate_random_string():
    value = generate_random_string(24)

    assert len(value) == 24
    assert set(value) <= set(DEFAULT_CHARSET)
    assert set(generate_random_string(50, "ab")) <= {"a", "b"}


@pytest.mark.parametrize(("length", "charset"), [(0, "abc"), (-1, "abc"), (5, "")])
def test_generate_random_string_rejects_bad_input(length, charset):
    with pytest.raises(ValueError):
        generate_random_string(length, charset)


# ==============================================================================
# Validation
# ==============================================================================


def test_validate_email_valid():
    result = validate_email("ada@example.com")

    assert result.is_valid
    assert result.errors == []


def test_validate_email_bad_format():
    result = validate_email("not-an-email")

    assert not result.is_valid
    assert result.errors == ["Invalid email format"]


def test_validate_email_disposable_and_tld():
    assert validate_email("x@mailinator.com").is_valid
    assert "Disposable email addresses are not allowed" in validate_email(
        "x@mailinator.com", allow_disposable=False
    ).errors
    assert not validate_email("x@example.c").is_valid
    assert validate_email("x@example.c", require_tld=False).is_valid


def test_validate_email_consecutive_dots_is_warning():
    result = validate_email("a..b@example.com")

    assert result.is_valid
    assert result.warnings == ["Consecutive dots in local part may cause issues"]


@pytest.mark.parametrize("value", [None, "", "   ", [], {}, set(), ()])
def test_is_empty_true(value):
    assert is_empty(value)


@pytest.mark.parametrize("value", [0, False, "x", [0], {"a": None}])
def test_is_empty_false(value):
    assert not is_empty(value)


# ==============================================================================
# deep_clone
# ==============================================================================


def test_deep_clone_nested_structures_are_independent():
    original = {"ids": ["a", "b"], "meta": {"tags": {"x"}, "pair": (1, [2])}}

    clone = deep_clone(original)
    clone["ids"].append("c")
    clone["meta"]["tags"].add("y")
    clone["meta"]["pair"][1].append(3)

    assert original == {"ids": ["a", "b"], "meta": {"tags": {"x"}, "pair": (1, [2])}}


def test_deep_clone_models_and_immutables():
    filters = FilterParams(status=UserStatus.ACTIVE)
    moment = datetime(2024, 1, 1)

    clone = deep_clone(filters)

    assert clone == filters and clone is not filters
    assert deep_clone(moment) is moment
    assert deep_clone("text") == "text"


# ==============================================================================
# debounce / throttle
# ==============================================================================


async def test_debounce_fires_once_with_last_arguments():
    calls = []
    debounced = debounce(calls.append, 0.01)

    debounced("a")
    debounced("b")
    debounced("c")
    assert debounced.pending

    await asyncio.sleep(0.05)

    assert calls == ["c"]
    assert not debounced.pending


async def test_debounce_cancel_drops_pending_call():
    calls = []
    debounced = debounce(calls.append, 0.01)

    debounced("a")
    debounced.cancel()
    await asyncio.sleep(0.03)

    assert calls == []


async def test_debounce_schedules_coroutines():
    seen = []

    async def search(term):
        seen.append(term)

    debounced = debounce(search, 0)
    debounced("ada")
    await asyncio.sleep(0.01)

    assert seen == ["ada"]


def test_debounce_rejects_negative_delay():
    with pytest.raises(ValueError):
        debounce(print, -1)


def test_throttle_drops_calls_inside_window():
    ticks = iter([0.0, 0.5, 1.0, 1.2, 2.5])
    calls = []
    throttled = throttle(lambda value: calls.append(value) or value, 1.0, clock=lambda: next(ticks))

    results = [throttled(n) for n in range(5)]

    assert calls == [0, 2, 4]
    assert results == [0, None, 2, None, 4]
