"""Field normalisation between wizard values and the remote store's conventions.

Country names arrive in whatever language the user typed them in; the store keys its
``Country`` records by English name. Catalog resources differ between installations in
which display, image and activity fields they carry, so the helpers below fold those
variants into one shape.
"""

from __future__ import annotations

import gettext
import re
import unicodedata
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from functools import lru_cache
from logging import getLogger
from typing import Final
from urllib.parse import urlsplit

import pycountry

log = getLogger(__name__)

DEFAULT_LOCALES: Final[tuple[str, ...]] = ("en", "de", "tr")

# Store spellings that differ from the ISO short name.
_STORE_NAMES: Final[dict[str, str]] = {
    "TR": "Turkey",
}

_ALIASES: Final[dict[str, str]] = {
    "turkey": "TR",
    "turkei": "TR",
    "turkiye": "TR",
    "republic of turkey": "TR",
    "turkiye cumhuriyeti": "TR",
    "uk": "GB",
    "great britain": "GB",
    "england": "GB",
    "usa": "US",
    "united states of america": "US",
    "brd": "DE",
    "bundesrepublik deutschland": "DE",
}

_SPACES = re.compile(r"\s+")

SERVICE_DISPLAY_FIELDS: Final[tuple[str, ...]] = ("service_name", "title", "description")
SERVICE_IMAGE_FIELDS: Final[tuple[str, ...]] = ("image", "service_image", "custom_image")
COMPANY_TYPE_DISPLAY_FIELDS: Final[tuple[str, ...]] = (
    "company_type",
    "type_name",
    "title",
    "description",
)


def fold(value: str) -> str:
    """Case-, accent- and whitespace-insensitive form of ``value``."""

    decomposed = unicodedata.normalize("NFKD", value)
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    stripped = stripped.replace("ı", "i")
    return _SPACES.sub(" ", stripped.casefold()).strip()


def _translations(locale: str) -> gettext.NullTranslations:
    return gettext.translation(
        "iso3166-1",
        pycountry.LOCALES_DIR,
        languages=[locale],
        fallback=True,
    )


def _country_names(country: object) -> list[str]:
    names: list[str] = []
    for attribute in ("name", "official_name", "common_name"):
        value = getattr(country, attribute, None)
        if isinstance(value, str) and value:
            names.append(value)
    return names


@lru_cache(maxsize=16)
def _locale_index(locale: str) -> Mapping[str, frozenset[str]]:
    translations = _translations(locale)
    index: dict[str, set[str]] = {}
    for country in pycountry.countries:
        code: str = country.alpha_2
        for name in _country_names(country):
            for spelling in {name, translations.gettext(name)}:
                index.setdefault(fold(spelling), set()).add(code)
    return {key: frozenset(codes) for key, codes in index.items()}


@lru_cache(maxsize=1)
def _code_index() -> Mapping[str, str]:
    index: dict[str, str] = {}
    for country in pycountry.countries:
        index[country.alpha_2.casefold()] = country.alpha_2
        index[country.alpha_3.casefold()] = country.alpha_2
    return index


def country_codes(value: str, locales: Iterable[str] = DEFAULT_LOCALES) -> frozenset[str]:
    """Return every ISO alpha-2 code ``value`` could denote in the given locales."""

    key = fold(value)
    if not key:
        return frozenset()
    codes: set[str] = set()
    code = _code_index().get(key)
    if code is not None:
        codes.add(code)
    alias = _ALIASES.get(key)
    if alias is not None:
        codes.add(alias)
    for locale in locales:
        matches = _locale_index(locale).get(key)
        # A spelling shared by several countries in one locale identifies none of them.
        if matches is not None and len(matches) == 1:
            codes.update(matches)
    return frozenset(codes)


def country_name(code: str) -> str | None:
    """English name the store uses for ISO alpha-2 ``code``."""

    if code in _STORE_NAMES:
        return _STORE_NAMES[code]
    country = pycountry.countries.get(alpha_2=code)
    if country is None:
        return None
    return getattr(country, "common_name", None) or country.name


def normalize_country(value: str | None, locales: Iterable[str] = DEFAULT_LOCALES) -> str | None:
    """Map ``value`` to the store's English country name when it is unambiguous.

    Anything that is not recognised as exactly one country is returned unchanged.
    """

    if value is None:
        return None
    trimmed = value.strip()
    if not trimmed:
        return value
    codes = country_codes(trimmed, tuple(locales))
    if len(codes) != 1:
        if codes:
            log.debug("Country %r is ambiguous: %s", trimmed, sorted(codes))
        return value
    (code,) = codes
    return country_name(code) or value


def first_present(record: Mapping[str, object], fields: Iterable[str]) -> object | None:
    """Value of the first field in ``fields`` that is set to something non-blank."""

    for name in fields:
        value = record.get(name)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def first_text(record: Mapping[str, object], fields: Iterable[str]) -> str | None:
    value = first_present(record, fields)
    if value is None:
        return None
    return value.strip() if isinstance(value, str) else str(value)


def _truthy(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y"}
    return bool(value)


def is_active(record: Mapping[str, object]) -> bool:
    """Whether a catalog record is enabled under any of the known flag spellings."""

    if "disabled" in record and record["disabled"] is not None:
        return not _truthy(record["disabled"])
    for name in ("is_active", "enabled", "custom_is_active", "active"):
        if name in record and record[name] is not None:
            return _truthy(record[name])
    return True


def relative_file_path(value: str | None) -> str | None:
    """Reduce an absolute file URL on the store to its store-relative path."""

    if not value:
        return None
    value = value.strip()
    if not value:
        return None
    parts = urlsplit(value)
    if parts.scheme and parts.netloc:
        path = parts.path or "/"
        return f"{path}?{parts.query}" if parts.query else path
    if not value.startswith("/"):
        return f"/{value}"
    return value


@dataclass(slots=True, frozen=True)
class CatalogEntry:
    id: str
    name: str
    description: str | None = None
    image: str | None = None

    def as_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "image": self.image,
        }


def display_name(
    record: Mapping[str, object],
    fields: Iterable[str] = SERVICE_DISPLAY_FIELDS,
) -> str | None:
    return first_text(record, fields)


def canonical_service(record: Mapping[str, object]) -> CatalogEntry | None:
    identifier = first_text(record, ("name",))
    if identifier is None:
        return None
    return CatalogEntry(
        id=identifier,
        name=display_name(record) or identifier,
        description=first_text(record, ("description",)),
        image=relative_file_path(first_text(record, SERVICE_IMAGE_FIELDS)),
    )


def canonical_company_type(record: Mapping[str, object]) -> CatalogEntry | None:
    identifier = first_text(record, ("name",))
    if identifier is None:
        return None
    return CatalogEntry(
        id=identifier,
        name=display_name(record, COMPANY_TYPE_DISPLAY_FIELDS) or identifier,
        description=first_text(record, ("description",)),
    )


__all__ = [
    "DEFAULT_LOCALES",
    "CatalogEntry",
    "canonical_company_type",
    "canonical_service",
    "country_codes",
    "country_name",
    "display_name",
    "first_present",
    "first_text",
    "fold",
    "is_active",
    "normalize_country",
    "relative_file_path",
]
