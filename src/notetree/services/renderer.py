"""
Document Renderer

Converts the editor's structured JSON document (``{"root": {...}}`` node
tree) into markdown. The result is only used as embedding input, so unknown
node types are skipped rather than rejected. Nodes of the wrong shape are
rejected.
"""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

HEADING_LEVELS = {f"h{level}": level for level in range(1, 7)}


class RenderError(ValueError):
    """The body is not a valid structured document."""


def render_document(body: str) -> str:
    """
    Render a structured document body to markdown.

    An empty body renders to an empty string.

    Raises:
        RenderError: If ``body`` is not JSON, lacks a ``root`` node, contains
            a malformed node or is nested too deeply to render.
    """
    if not body.strip():
        return ""
    try:
        document = json.loads(body)
    except json.JSONDecodeError as e:
        raise RenderError(f"Body is not valid JSON: {e.msg}") from e
    except RecursionError as e:
        raise RenderError("Body is nested too deeply") from e
    if not isinstance(document, dict) or not isinstance(document.get("root"), dict):
        raise RenderError("Body must be an object with a 'root' node")

    parts: list[str] = []
    try:
        _render_node(parts, document["root"])
    except RecursionError as e:
        raise RenderError("Body is nested too deeply") from e
    return "".join(parts)


def _children(node: dict[str, Any]) -> list[dict[str, Any]]:
    children = node.get("children")
    if children is None:
        return []
    if not isinstance(children, list):
        raise RenderError(f"'children' of a {node.get('type')!r} node must be a list")
    return children


def _text(node: dict[str, Any], key: str) -> str:
    value = node.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise RenderError(f"'{key}' of a {node.get('type')!r} node must be a string")
    return value


def _render_children(parts: list[str], node: dict[str, Any]) -> None:
    for child in _children(node):
        _render_node(parts, child)


def _render_node(parts: list[str], node: Any) -> None:
    if not isinstance(node, dict):
        raise RenderError(f"Document nodes must be objects, got {type(node).__name__}")
    node_type = node.get("type")

    if node_type == "root":
        _render_children(parts, node)
    elif node_type == "heading":
        parts.append("#" * HEADING_LEVELS.get(_text(node, "tag"), 1) + " ")
        _render_children(parts, node)
        parts.append("\n\n")
    elif node_type == "paragraph":
        _render_children(parts, node)
        parts.append("\n\n")
    elif node_type in ("text", "code-highlight"):
        parts.append(_text(node, "text"))
    elif node_type == "linebreak":
        parts.append("\n")
    elif node_type == "tab":
        parts.append("\t")
    elif node_type == "list":
        _render_list(parts, node)
        parts.append("\n")
    elif node_type == "code":
        parts.append("```" + _text(node, "language") + "\n")
        _render_children(parts, node)
        parts.append("\n```\n\n")
    elif node_type == "quote":
        parts.append("> ")
        _render_children(parts, node)
        parts.append("\n\n")
    else:
        logger.debug("Skipping unknown node type: %s", node_type)


def _render_list(parts: list[str], node: dict[str, Any]) -> None:
    list_type = node.get("listType")
    for index, item in enumerate(_children(node), start=1):
        if not isinstance(item, dict):
            raise RenderError("List items must be objects")
        if list_type == "bullet":
            parts.append("- ")
        elif list_type == "number":
            parts.append(f"{index}. ")
        _render_children(parts, item)
        parts.append("\n")
