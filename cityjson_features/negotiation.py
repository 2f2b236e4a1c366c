# ============================================================================
# MODULE CONTEXT - CITYJSON FEATURES CONTENT NEGOTIATION
# ============================================================================
# STATUS: Standalone Module - response format selection and alternate links
# PURPOSE: Pick json/html from ?f= or Accept, build self/alternate hrefs
# EXPORTS: F_JSON, F_HTML, FORMAT_TYPES, negotiate_format, alternate_format,
#          format_query, items_links, path_segment
# DEPENDENCIES: urllib.parse, typing
# PATTERNS: Explicit parameter overrides header, HTML default
# ENTRY_POINTS: fmt = negotiate_format(req.params, req.headers)
# ============================================================================

"""
Content Negotiation

``?f=`` wins over the ``Accept`` header. An explicit ``f`` other than
``json`` or ``html`` is a client error whatever ``Accept`` says. Without
``f`` the first recognised media type in ``Accept`` decides, and HTML is
served when nothing is recognised.
"""

from collections import OrderedDict
from typing import List, Mapping, Optional, Sequence, Tuple
from urllib.parse import quote, urlencode

from .errors import InvalidParameterValue
from .models import OGCLink

F_JSON = "json"
F_HTML = "html"

FORMAT_TYPES = OrderedDict((
    (F_HTML, "text/html"),
    (F_JSON, "application/json"),
))

_ACCEPTED_MIMES = {
    "text/html": F_HTML,
    "application/json": F_JSON,
    "application/geo+json": F_JSON,
}


def negotiate_format(params: Mapping[str, str], headers: Optional[Mapping[str, str]] = None) -> str:
    """
    Select the response format.

    Args:
        params: Query parameters
        headers: Request headers

    Returns:
        ``"json"`` or ``"html"``

    Raises:
        InvalidParameterValue: ``f`` given with an unsupported value
    """
    if "f" in params:
        format_ = params["f"]
        if format_ not in FORMAT_TYPES:
            raise InvalidParameterValue("Invalid format")
        return format_

    headers = headers or {}
    accept = (headers.get("accept") or headers.get("Accept") or "").strip()
    # q= weights are ignored, first recognised type wins
    for type_ in (t.split(";")[0].strip().lower() for t in accept.split(",") if t):
        if type_ in _ACCEPTED_MIMES:
            return _ACCEPTED_MIMES[type_]

    return F_HTML


def alternate_format(format_: str) -> str:
    return F_JSON if format_ == F_HTML else F_HTML


def format_query(query_pairs: Sequence[Tuple[str, str]], format_: str) -> str:
    """
    Rewrite a query string so that ``f`` carries ``format_``.

    An existing ``f`` is replaced where it stands; otherwise ``f`` is appended.
    Every other parameter keeps its position and value.
    """
    pairs: List[Tuple[str, str]] = []
    replaced = False
    for key, value in query_pairs:
        if key == "f":
            if replaced:
                continue
            pairs.append(("f", format_))
            replaced = True
        else:
            pairs.append((key, value))

    if not replaced:
        pairs.append(("f", format_))

    return urlencode(pairs)


def path_segment(value: str) -> str:
    """Percent-encode a collection or item id as a single URL path segment."""
    return quote(str(value), safe="")


def items_links(
    base_url: str,
    collection_id: str,
    query_pairs: Sequence[Tuple[str, str]],
    format_: str
) -> List[OGCLink]:
    """
    ``self`` and ``alternate`` links for an items response.

    Both point at the same filtered result, one per representation.
    """
    items_url = f"{base_url}/collections/{path_segment(collection_id)}/items"
    other = alternate_format(format_)
    return [
        OGCLink(
            href=f"{items_url}?{format_query(query_pairs, format_)}",
            rel="self",
            type=FORMAT_TYPES[format_],
            title="This document"
        ),
        OGCLink(
            href=f"{items_url}?{format_query(query_pairs, other)}",
            rel="alternate",
            type=FORMAT_TYPES[other],
            title=f"This document as {other.upper()}"
        ),
    ]
