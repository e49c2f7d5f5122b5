"""
odata_expand.odata.expand - Implicit Attributes expansion
==========================================================

Rewrites inbound collection reads so that the open-type ``Attributes``
collection is always expanded:

- no ``$expand``          -> ``$expand=Attributes`` is appended
- ``$expand=Orders,Pets`` -> ``$expand=Attributes,Orders($expand=Attributes),Pets($expand=Attributes)``
- ``$expand=Attributes``  -> ``$expand=Attributes``
- two or more ``$expand`` -> :class:`ExpandRewriteError`

Only top-level targets are rewritten. A target that already carries its
own options, e.g. ``Orders($expand=Lines)``, is rejected rather than
guessed at.

Examples
--------
>>> rewrite_target("/odata/Persons")
'/odata/Persons?$expand=Attributes'
>>> rewrite_expand_value("Orders,Pets")
'Attributes,Orders($expand=Attributes),Pets($expand=Attributes)'
"""

from __future__ import annotations

import logging
from typing import List
from urllib.parse import urlsplit

from odata_expand.odata.errors import ExpandRewriteError
from odata_expand.odata.urls import (
    decode_segment,
    encode_pair,
    join_segments,
    split_segments,
    with_query,
)

logger = logging.getLogger("odata_expand.expand")

EXPAND_KEY = "$expand"
ATTRIBUTES = "Attributes"
NESTED_ATTRIBUTES = f"({EXPAND_KEY}={ATTRIBUTES})"


def split_top_level(text: str, sep: str = ",") -> List[str]:
    """
    Split ``text`` on ``sep`` outside of parentheses and quoted literals.

    Examples
    --------
    >>> split_top_level("A,B($expand=C,D),E")
    ['A', 'B($expand=C,D)', 'E']
    """
    parts: List[str] = []
    depth = 0
    in_quote = False
    current: List[str] = []
    for ch in text:
        if ch == "'":
            in_quote = not in_quote
        elif not in_quote:
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth < 0:
                    raise ExpandRewriteError(f"Unbalanced parentheses in '{text}'")
            elif ch == sep and depth == 0:
                parts.append("".join(current))
                current = []
                continue
        current.append(ch)
    if depth != 0 or in_quote:
        raise ExpandRewriteError(f"Unbalanced parentheses in '{text}'")
    parts.append("".join(current))
    return parts


def expand_targets(value: str) -> List[str]:
    """Return the non-blank top-level targets of an ``$expand`` value."""
    return [t.strip() for t in split_top_level(value) if t.strip()]


def rewrite_expand_value(value: str) -> str:
    """
    Force every top-level expansion target to expand its own Attributes.

    An explicit ``Attributes`` target is already covered by the leading
    ``Attributes`` and is dropped.

    Raises
    ------
    ExpandRewriteError
        If a target already carries nested options
    """
    targets = expand_targets(value)
    nested = [t for t in targets if "(" in t]
    if nested:
        raise ExpandRewriteError(
            f"Nested $expand options are not supported: {', '.join(nested)}"
        )
    return ",".join(
        [ATTRIBUTES] + [t + NESTED_ATTRIBUTES for t in targets if t != ATTRIBUTES]
    )


def rewrite_query_string(query: str) -> str:
    """
    Apply the rewrite to a raw query string.

    Segments other than ``$expand`` are kept exactly as received.
    """
    segments = split_segments(query)
    expands = [
        i for i, segment in enumerate(segments)
        if decode_segment(segment)[0] == EXPAND_KEY
    ]
    _check_single(len(expands))

    if not expands:
        segments.append(encode_pair(EXPAND_KEY, ATTRIBUTES))
    else:
        idx = expands[0]
        _, value = decode_segment(segments[idx])
        segments[idx] = encode_pair(EXPAND_KEY, rewrite_expand_value(value))
    return join_segments(segments)


def rewrite_target(url: str) -> str:
    """
    Rewrite a full request target (path or absolute URL).

    Examples
    --------
    >>> rewrite_target("/Persons?$filter=Age%20gt%2010")
    '/Persons?$filter=Age%20gt%2010&$expand=Attributes'
    """
    rewritten = with_query(url, rewrite_query_string(urlsplit(url).query))
    logger.debug("Rewrote request target %s -> %s", url, rewritten)
    return rewritten


def _check_single(count: int) -> None:
    if count > 1:
        raise ExpandRewriteError(
            f"Only expected to find $expand once in the URL but found {count}"
        )
