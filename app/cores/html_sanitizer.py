import html
from typing import Optional

import bleach


class HTMLSanitizer:
    """Limpia el texto libre de usuarios antes de guardarlo (títulos, comentarios, tweets)."""

    @staticmethod
    def sanitize_strict(text: Optional[str]) -> str:
        """
        Elimina TODOS los tags HTML y los espacios de los extremos.

        bleach escapa el texto que deja (`&` -> `&amp;`); se guarda texto plano,
        así que se desescapa una vez después de quitar los tags.

        Args:
            text: Texto a sanitizar

        Returns:
            Texto plano sin tags HTML
        """
        if not text:
            return ""
        return html.unescape(bleach.clean(text, tags=[], strip=True)).strip()
