import enum
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select


class SortOrder(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class PageRequest:
    page: int
    limit: int
    sort_by: str
    sort_order: SortOrder
    offset: int


def _coerce_positive_int(value: Any, fallback: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return fallback
    return number if number >= 1 else fallback


def get_page_request(
    page: Optional[Any] = None,
    limit: Optional[Any] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    allowed_sort: Iterable[str] = (),
    default_sort: str = "createdAt",
    default_limit: int = 10,
    max_limit: int = 100,
) -> PageRequest:
    """
    Normaliza los parámetros de paginación de cualquier listado.

    Args:
        page: Página pedida (>= 1; cualquier otro valor cae a 1)
        limit: Tamaño de página (se acota a max_limit; inválido cae a default_limit)
        sort_by: Campo de orden; si no está en allowed_sort se usa default_sort
        sort_order: "asc" o "desc"; cualquier otro valor cae a "desc"

    Returns:
        PageRequest ya validado
    """
    normalized_limit = min(_coerce_positive_int(limit, default_limit), max_limit)
    normalized_page = _coerce_positive_int(page, 1)
    order = (sort_order or "").lower()
    return PageRequest(
        page=normalized_page,
        limit=normalized_limit,
        sort_by=sort_by if sort_by in set(allowed_sort) else default_sort,
        sort_order=SortOrder(order) if order in ("asc", "desc") else SortOrder.DESC,
        offset=(normalized_page - 1) * normalized_limit,
    )


def get_pagination(page: int, limit: int, total: int, total_key: str = "totalItems") -> Dict[str, Any]:
    """Metadatos de paginación: totalPages es 0 cuando no hay resultados."""
    total_pages = math.ceil(total / limit) if total > 0 else 0
    has_next_page = page < total_pages
    has_prev_page = page > 1
    return {
        "currentPage": page,
        "totalPages": total_pages,
        total_key: total,
        "limit": limit,
        "hasNextPage": has_next_page,
        "hasPrevPage": has_prev_page,
        "nextPage": page + 1 if has_next_page else None,
        "prevPage": page - 1 if has_prev_page else None,
    }


def get_order_clause(column, sort_order: SortOrder):
    return column.asc() if sort_order == SortOrder.ASC else column.desc()


class PaginationService:
    @staticmethod
    async def get_paginated_rows(
        db: AsyncSession,
        query: Select,
        page_request: PageRequest,
    ) -> Tuple[List[Any], int]:
        """
        Ejecuta `query` con offset/limit y cuenta el total de filas que coinciden.

        El conteo se hace sobre la misma consulta sin ORDER BY, así los filtros
        del listado y del total nunca divergen.
        """
        total_query = select(func.count()).select_from(query.order_by(None).subquery())
        total = (await db.execute(total_query)).scalar() or 0

        paginated_query = query.limit(page_request.limit).offset(page_request.offset)
        rows = (await db.execute(paginated_query)).all()
        return list(rows), total
