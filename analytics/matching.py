"""Description and issuer matching used as the ledger's join key.

Transactions carry no foreign key to the recurring obligation or fixed
expense they fulfil, so every join in the engine goes through the functions
below. The heuristic is brittle to description edits; replacing it with an
explicit link field only requires changing this module.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Optional

__all__ = [
    "normalize_description",
    "normalize_issuer",
    "same_obligation",
    "descriptions_overlap",
    "issuer_matches",
    "DEFAULT_ISSUER_KEY",
]

DEFAULT_ISSUER_KEY = "card"

_WHITESPACE = re.compile(r"\s+")


@lru_cache(maxsize=1024)
def normalize_description(raw: Optional[str]) -> str:
    """Return the trimmed, lower-cased description used for equality joins.

    Parameters
    ----------
    raw:
        Free-text transaction description.

    Returns
    -------
    str
        Lower-case text with internal whitespace collapsed. Empty string for
        falsy input.
    """

    if not isinstance(raw, str) or not raw:
        return ""
    return _WHITESPACE.sub(" ", raw.strip().lower())


def normalize_issuer(raw: Optional[str]) -> str:
    """Return the issuer cluster key, ``"card"`` when the issuer is unknown."""

    key = normalize_description(raw)
    return key or DEFAULT_ISSUER_KEY


def same_obligation(left: Optional[str], right: Optional[str]) -> bool:
    """``True`` when two descriptions refer to the same recurring obligation."""

    left_key = normalize_description(left)
    return bool(left_key) and left_key == normalize_description(right)


def descriptions_overlap(left: Optional[str], right: Optional[str]) -> bool:
    """Bidirectional substring match used for fixed-expense fulfilment."""

    left_key = normalize_description(left)
    right_key = normalize_description(right)
    if not left_key or not right_key:
        return False
    return left_key in right_key or right_key in left_key


def issuer_matches(cluster_key: str, issuer: Optional[str]) -> bool:
    """``True`` when ``issuer`` is contained in the normalised cluster key."""

    issuer_key = normalize_description(issuer)
    return bool(issuer_key) and issuer_key in cluster_key
