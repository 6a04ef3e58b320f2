"""Variant rendering: apply a variant's modifications to a base form document.

Documents are plain dicts (``fields``, ``styling``, ``settings``, ``name``,
``description``). The input document is never mutated: every helper copies
the containers it writes to and shares everything else by reference.
"""

import copy
from collections.abc import Iterable
from typing import Any

import structlog

from .models import (
    ABTestVariant,
    ContentModification,
    ContentSlot,
    FieldModification,
    LayoutModification,
    Modification,
    ModificationOperation,
    StyleModification,
)

logger = structlog.get_logger()

DEFAULT_STYLING: dict[str, Any] = {
    "theme": "modern-dark",
    "colors": {
        "primary": "#6366f1",
        "secondary": "#8b5cf6",
        "background": "#0f0f1a",
        "surface": "#1a1a2e",
        "text": "#ffffff",
        "textSecondary": "#a1a1aa",
        "border": "#27273a",
        "error": "#ef4444",
        "success": "#22c55e",
        "accent": "#06b6d4",
    },
}

# Content slots that live under document["settings"]
_SETTINGS_SLOTS = {ContentSlot.SUBMIT_BUTTON_TEXT, ContentSlot.SUCCESS_MESSAGE}


def apply_variant(document: dict[str, Any], variant: ABTestVariant) -> dict[str, Any]:
    """Render ``variant`` on top of ``document``."""
    return apply_modifications(document, variant.modifications)


def apply_modifications(
    document: dict[str, Any], modifications: Iterable[Modification]
) -> dict[str, Any]:
    """Apply modifications in order; later ones win on the same target."""
    rendered = dict(document)
    for modification in modifications:
        match modification:
            case FieldModification():
                rendered = _apply_field(rendered, modification)
            case StyleModification():
                rendered = _apply_style(rendered, modification)
            case ContentModification():
                rendered = _apply_content(rendered, modification)
            case LayoutModification():
                rendered = _apply_layout(rendered, modification)
    return rendered


def _find_field(fields: list[dict[str, Any]], field_id: str) -> int:
    for idx, field in enumerate(fields):
        if field.get("id") == field_id:
            return idx
    return -1


def _apply_field(document: dict[str, Any], modification: FieldModification) -> dict[str, Any]:
    fields = list(document.get("fields") or [])
    value = modification.value

    if modification.operation == ModificationOperation.ADD:
        if value is not None:
            fields.append(dict(value))
        return {**document, "fields": fields}

    idx = _find_field(fields, modification.target)
    if idx == -1:
        logger.debug("field_target_not_found", target=modification.target)
        return document

    if modification.operation == ModificationOperation.UPDATE and value is not None:
        fields[idx] = {**fields[idx], **value}
    elif modification.operation == ModificationOperation.REMOVE:
        del fields[idx]
    elif modification.operation == ModificationOperation.REPLACE and value is not None:
        fields[idx] = dict(value)

    return {**document, "fields": fields}


def _apply_style(document: dict[str, Any], modification: StyleModification) -> dict[str, Any]:
    styling = document.get("styling")
    if styling is None:
        styling = copy.deepcopy(DEFAULT_STYLING)
    else:
        styling = dict(styling)

    if modification.operation == ModificationOperation.UPDATE and modification.value is not None:
        keys = modification.target.split(".")
        current = styling
        for key in keys[:-1]:
            child = current.get(key)
            # Copy each dict on the path before writing through it
            child = dict(child) if isinstance(child, dict) else {}
            current[key] = child
            current = child
        current[keys[-1]] = modification.value

    return {**document, "styling": styling}


def _apply_content(document: dict[str, Any], modification: ContentModification) -> dict[str, Any]:
    try:
        slot = ContentSlot(modification.target)
    except ValueError:
        logger.debug("unknown_content_slot", target=modification.target)
        return document

    if slot in _SETTINGS_SLOTS:
        settings = dict(document.get("settings") or {})
        settings[slot.value] = modification.value or settings.get(slot.value)
        return {**document, "settings": settings}

    return {**document, slot.value: modification.value or document.get(slot.value)}


def _apply_layout(document: dict[str, Any], modification: LayoutModification) -> dict[str, Any]:
    if modification.target != "columns":
        return document

    widths = modification.value
    fields = []
    for idx, field in enumerate(document.get("fields") or []):
        width = widths[idx] if idx < len(widths) else None
        fields.append({**field, "width": width} if width else dict(field))
    return {**document, "fields": fields}
