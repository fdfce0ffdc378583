"""Prompt templating.

Placeholders are ``{FieldName}`` tokens. Substitution walks the record's
fields in their iteration order and, for each field, replaces every literal
occurrence of its placeholder in one left-to-right pass. Already substituted
text is never re-scanned for the current field, but it *is* visible to the
fields that come after it: if a value contains ``{Other}`` and ``Other`` is
iterated later, that text gets replaced too. The outcome of such collisions
depends on field order and is intentionally left as is.
"""
from __future__ import annotations

from typing import Any, Mapping

from airgen.domain import render_value


def placeholder(name: str) -> str:
    return "{" + name + "}"


def render(template: str, fields: Mapping[str, Any]) -> str:
    rendered = template
    for name, value in fields.items():
        rendered = rendered.replace(placeholder(name), render_value(value))
    return rendered
