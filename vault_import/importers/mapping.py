"""Declarative source-field to cipher-attribute mapping tables."""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from vault_import.vault.schemas import LoginUri

MAX_URI_LENGTH = 1000

TRUE_MARKERS = {"1", "y", "yes", "true", "on"}


def text(value: str | None) -> str | None:
    """Keep the value verbatim unless it is empty or whitespace."""
    if value is None or not value.strip():
        return None
    return value


def stripped(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def yes_no(value: str | None) -> bool:
    return value is not None and value.strip().lower() in TRUE_MARKERS


def non_zero(value: str | None) -> bool:
    """Bitwarden style flags: anything but an empty value or ``0`` is set."""
    return value is not None and value.strip() not in ("", "0")


def fix_uri(uri: str) -> str:
    uri = uri.strip()
    if "://" not in uri and "." in uri:
        uri = f"http://{uri}"
    return uri[:MAX_URI_LENGTH]


def uri_list(value: str | Iterable[str] | None) -> list[LoginUri]:
    if value is None:
        return []
    candidates = [value] if isinstance(value, str) else list(value)
    return [LoginUri(uri=fix_uri(u)) for u in candidates if u is not None and u.strip()]


@dataclass(frozen=True)
class FieldMapping:
    source: str
    target: str
    coerce: Callable[[Any], Any] = text


def apply_mappings(
    record: Mapping[str, Any], mappings: Iterable[FieldMapping], target: object
) -> None:
    """Copy mapped source values onto ``target``.

    ``target`` paths are dotted (``login.username``); intermediate objects must already
    exist. Values that coerce to ``None`` leave the attribute untouched.
    """
    for mapping in mappings:
        value = mapping.coerce(record.get(mapping.source))
        if value is None:
            continue
        *parents, attribute = mapping.target.split(".")
        obj = target
        for parent in parents:
            obj = getattr(obj, parent)
        setattr(obj, attribute, value)
