"""Parser for the inner ``TYPE:NAME`` text of a placeholder."""

from __future__ import annotations

import re

from core.templates.models import FieldDescriptor, FieldType
from core.utils.errors import TemplateSyntaxError

_TOKEN_RE = re.compile(r"[A-Za-z0-9_]+")
_SEPARATOR = ":"


def parse_field_descriptor(inner: str) -> FieldDescriptor:
    """Parse placeholder inner text into a field descriptor.

    Rules:
    - split happens on the first ``:`` only
    - TYPE is matched case-sensitively; unknown tokens become CUSTOM
    - TYPE and NAME allow only A-Z, a-z, 0-9 and underscore

    Raises:
        TemplateSyntaxError: separator missing, empty or invalid token.
    """

    type_token, separator, name = inner.partition(_SEPARATOR)
    if not separator:
        raise TemplateSyntaxError(f"Placeholder '{inner}' is missing ':' separator")
    if not name:
        raise TemplateSyntaxError(f"Placeholder '{inner}' has an empty field name")
    if not type_token:
        raise TemplateSyntaxError(f"Placeholder '{inner}' has an empty field type")
    if not _TOKEN_RE.fullmatch(type_token):
        raise TemplateSyntaxError(f"Invalid field type token '{type_token}'")
    if not _TOKEN_RE.fullmatch(name):
        raise TemplateSyntaxError(f"Invalid field name '{name}'")

    return FieldDescriptor(field_type=FieldType.from_token(type_token), name=name)
