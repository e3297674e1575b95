from __future__ import annotations

from typing import Iterable

DEFAULT_ACRONYMS: tuple[str, ...] = (
    "ACL",
    "ACS",
    "API",
    "CSRF",
    "DNS",
    "GID",
    "GPG",
    "HTML",
    "HTTP",
    "HTTPS",
    "ID",
    "IP",
    "JSON",
    "JWKS",
    "JWT",
    "LDAP",
    "MD5",
    "MFA",
    "OAuth",
    "OTP",
    "SAML",
    "SHA",
    "SMTP",
    "SQL",
    "SSH",
    "SSL",
    "TLS",
    "TOTP",
    "TTL",
    "UI",
    "UID",
    "URI",
    "URL",
    "UUID",
    "XML",
)


def _ordered_acronyms(acronyms: Iterable[str]) -> tuple[str, ...]:
    unique = {item for item in acronyms if item}
    return tuple(sorted(unique, key=lambda item: (-len(item), item)))


def _match_acronym(chunk: str, start: int, acronyms: tuple[str, ...]) -> int | None:
    size = len(chunk)
    for acronym in acronyms:
        if not chunk.startswith(acronym, start):
            continue
        end = start + len(acronym)
        while end < size and chunk[end].isdigit():
            end += 1
        if end < size and chunk[end] == "s" and (end + 1 == size or chunk[end + 1].isupper()):
            end += 1
        if end == size or chunk[end].isupper():
            return end
    return None


def _split_chunk(chunk: str, acronyms: tuple[str, ...]) -> list[str]:
    words: list[str] = []
    index = 0
    size = len(chunk)
    while index < size:
        if not chunk[index].isupper():
            end = index + 1
            while end < size and not chunk[end].isupper():
                end += 1
        else:
            end = _match_acronym(chunk, index, acronyms)
            if end is None:
                # Lone capital, or a capital opening a lowercase word.
                end = index + 1
                while end < size and not chunk[end].isupper():
                    end += 1
        words.append(chunk[index:end])
        index = end
    return words


def split_words(identifier: str, acronyms: Iterable[str] = DEFAULT_ACRONYMS) -> list[str]:
    """Split a field identifier into its words.

    Underscores always separate words. Inside a chunk, known acronyms stay
    whole (``MD5``, ``URLs``); any other capital starts a new word, so an
    unknown run such as ``DN`` splits into ``D`` and ``N``.
    """
    if not identifier:
        raise ValueError("identifier must be a non-empty string")
    ordered = _ordered_acronyms(acronyms)
    words: list[str] = []
    for chunk in identifier.split("_"):
        if chunk:
            words.extend(_split_chunk(chunk, ordered))
    if not words:
        raise ValueError(f"identifier {identifier!r} contains no words")
    return words


def expected_tag(identifier: str, acronyms: Iterable[str] = DEFAULT_ACRONYMS) -> str:
    """Return the wire tag a field named ``identifier`` is expected to declare.

    >>> expected_tag("FingerprintMD5")
    'fingerprint_md5'
    >>> expected_tag("created_at")
    'created_at'
    """
    return "_".join(word.lower() for word in split_words(identifier, acronyms))
