"""
odata_expand.odata.urls - Query string handling
================================================

Segment-level parsing and re-serialization of request query strings.

A query string is kept as its ordered list of raw ``key=value`` segments so
a single parameter can be replaced or appended without re-encoding (or
accidentally matching text inside) any of the others.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple
from urllib.parse import quote, unquote_plus, urlsplit, urlunsplit

# characters that stay literal in rendered OData option values
ODATA_SAFE = "$(),;=':/"


def split_segments(query: str) -> List[str]:
    """Split a raw query string into its non-empty ``&``-separated segments."""
    return [s for s in (query or "").split("&") if s]


def decode_segment(segment: str) -> Tuple[str, str]:
    """Decode one raw segment into its ``(key, value)`` pair."""
    key, _, value = segment.partition("=")
    return unquote_plus(key), unquote_plus(value)


def encode_pair(key: str, value: str) -> str:
    """Render a pair as a raw segment, keeping OData punctuation readable."""
    return f"{quote(key, safe=ODATA_SAFE)}={quote(value, safe=ODATA_SAFE)}"


def parse_query_pairs(query: str) -> List[Tuple[str, str]]:
    """
    Parse a raw query string into ordered ``(key, value)`` pairs.

    Repeated keys are preserved, in order.

    Examples
    --------
    >>> parse_query_pairs("$filter=Age%20gt%2010&$expand=Orders")
    [('$filter', 'Age gt 10'), ('$expand', 'Orders')]
    """
    return [decode_segment(s) for s in split_segments(query)]


def join_segments(segments: Sequence[str]) -> str:
    return "&".join(segments)


def replace_params(query: str, **params: Optional[str]) -> str:
    """
    Set or remove parameters in a raw query string.

    Existing segments for other keys are kept byte-for-byte. A value of
    ``None`` removes the key. Keyword names map to ``$``-prefixed keys
    (``skip`` -> ``$skip``).
    """
    updates = {f"${k}": v for k, v in params.items()}
    out: List[str] = []
    done = set()
    for segment in split_segments(query):
        key, _ = decode_segment(segment)
        if key in updates:
            if key not in done and updates[key] is not None:
                out.append(encode_pair(key, str(updates[key])))
            done.add(key)
            continue
        out.append(segment)
    for key, value in updates.items():
        if key not in done and value is not None:
            out.append(encode_pair(key, str(value)))
    return join_segments(out)


def with_query(url: str, query: str) -> str:
    """Return ``url`` with its query component replaced by ``query``."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))
