# ============================================================================
# MODULE CONTEXT - CITYJSON FEATURES RENDERING
# ============================================================================
# STATUS: Standalone Module - response body rendering
# PURPOSE: Serialize envelopes as JSON or hand them to an HTML renderer
# EXPORTS: RenderedBody, HtmlRenderer, JinjaHtmlRenderer, render, PAGE_KINDS
# DEPENDENCIES: jinja2, pydantic, json, typing
# PATTERNS: Strategy (pluggable HTML renderer)
# ENTRY_POINTS: body = render("json", "items", items_envelope)
# ============================================================================

"""
Response Rendering

JSON bodies are the envelope models dumped as-is. HTML bodies are produced
by an ``HtmlRenderer`` from the very same payload dict, so both
representations always carry the same data. The default renderer uses the
Jinja2 templates shipped in ``cityjson_features/templates``.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Union

from jinja2 import Environment, PackageLoader, select_autoescape
from pydantic import BaseModel

from .negotiation import F_HTML, F_JSON, FORMAT_TYPES

PAGE_KINDS = ("landing", "collections", "collection", "items", "item")


@dataclass(frozen=True)
class RenderedBody:
    content: str
    media_type: str


class HtmlRenderer(Protocol):
    def render(self, kind: str, payload: Dict[str, Any]) -> str:
        ...


class JinjaHtmlRenderer:
    """Render page kinds with the packaged ``<kind>.html`` templates."""

    def __init__(self, environment: Optional[Environment] = None):
        self.environment = environment or Environment(
            loader=PackageLoader("cityjson_features", "templates"),
            autoescape=select_autoescape(["html"]),
        )

    def render(self, kind: str, payload: Dict[str, Any]) -> str:
        template = self.environment.get_template(f"{kind}.html")
        return template.render(data=payload, kind=kind)


_default_renderer: Optional[JinjaHtmlRenderer] = None


def get_default_renderer() -> JinjaHtmlRenderer:
    global _default_renderer
    if _default_renderer is None:
        _default_renderer = JinjaHtmlRenderer()
    return _default_renderer


def render(
    format_: str,
    kind: str,
    payload: Union[BaseModel, Dict[str, Any]],
    renderer: Optional[HtmlRenderer] = None
) -> RenderedBody:
    """
    Render an envelope in the negotiated format.

    Args:
        format_: ``"json"`` or ``"html"``
        kind: One of PAGE_KINDS
        payload: Envelope model or plain dict
        renderer: HTML renderer (packaged Jinja2 templates if not provided)

    Returns:
        RenderedBody with content and media type
    """
    if kind not in PAGE_KINDS:
        raise ValueError(f"Unknown page kind '{kind}'")

    if isinstance(payload, BaseModel):
        data = payload.model_dump(mode="json", exclude_none=True, by_alias=True)
    else:
        data = payload

    if format_ == F_JSON:
        return RenderedBody(content=json.dumps(data, indent=2), media_type=FORMAT_TYPES[F_JSON])

    if format_ == F_HTML:
        renderer = renderer or get_default_renderer()
        return RenderedBody(content=renderer.render(kind, data), media_type=FORMAT_TYPES[F_HTML])

    raise ValueError(f"Unknown format '{format_}'")
