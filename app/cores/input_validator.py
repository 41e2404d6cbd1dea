"""
Reglas de validación de campos como datos: nombre de campo -> lista de restricciones.
Los schemas de Pydantic las aplican con `validate_field`, así las variantes de
creación y actualización comparten exactamente las mismas reglas.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from app.cores.html_sanitizer import HTMLSanitizer


@dataclass(frozen=True)
class FieldRule:
    message: str
    check: Callable[[str], bool]


def _length(min_len: int, max_len: int, label: str) -> List[FieldRule]:
    return [
        FieldRule(f"{label} must be at least {min_len} characters", lambda v: len(v) >= min_len),
        FieldRule(f"{label} must not exceed {max_len} characters", lambda v: len(v) <= max_len),
    ]


def _pattern(regex: str, message: str) -> FieldRule:
    compiled = re.compile(regex)
    return FieldRule(message, lambda v: compiled.search(v) is not None)


FIELD_TRANSFORMS: Dict[str, List[Callable[[str], str]]] = {
    "fullname": [str.strip],
    "email": [str.strip, str.lower],
    "username": [str.strip, str.lower],
    "comment": [HTMLSanitizer.sanitize_strict],
    "tweet": [HTMLSanitizer.sanitize_strict],
    "playlist_name": [HTMLSanitizer.sanitize_strict],
    "playlist_description": [HTMLSanitizer.sanitize_strict],
    "video_title": [HTMLSanitizer.sanitize_strict],
    "video_description": [HTMLSanitizer.sanitize_strict],
    "search_query": [str.strip],
}

FIELD_RULES: Dict[str, List[FieldRule]] = {
    "fullname": _length(2, 50, "Full name") + [
        _pattern(r"^[A-Za-z\s]+$", "Full name can only contain letters and spaces"),
    ],
    "email": [FieldRule("Email must not exceed 255 characters", lambda v: len(v) <= 255)],
    "username": _length(3, 30, "Username") + [
        _pattern(r"^[a-z0-9_]+$", "Username can only contain letters, numbers and underscores"),
        _pattern(r"^[a-z]", "Username must start with a letter"),
    ],
    "password": _length(8, 128, "Password") + [
        _pattern(r"[a-z]", "Password must contain at least one lowercase letter"),
        _pattern(r"[A-Z]", "Password must contain at least one uppercase letter"),
        _pattern(r"\d", "Password must contain at least one number"),
    ],
    "comment": _length(1, 500, "Comment"),
    "tweet": _length(1, 280, "Tweet"),
    "playlist_name": _length(2, 50, "Playlist name"),
    "playlist_description": _length(10, 500, "Playlist description"),
    "video_title": _length(1, 100, "Title"),
    "video_description": [FieldRule("Description must not exceed 5000 characters", lambda v: len(v) <= 5000)],
    "search_query": [FieldRule("Search query must not exceed 100 characters", lambda v: len(v) <= 100)],
}


def validate_field(field: str, value: Any) -> Optional[str]:
    """
    Aplica las transformaciones y reglas del campo; lanza ValueError con el primer fallo.

    Pensado para usarse dentro de un `field_validator` de Pydantic, que convierte el
    ValueError en un error de validación 422 con el nombre del campo.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    for transform in FIELD_TRANSFORMS.get(field, []):
        value = transform(value)
    for rule in FIELD_RULES[field]:
        if not rule.check(value):
            raise ValueError(rule.message)
    return value
