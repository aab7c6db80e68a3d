from typing import Optional, Any, List, TypeVar, Generic
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from pydantic import BaseModel
from allocation_engine.core.exceptions import ValidationError
from allocation_engine.core.logging import logger

T = TypeVar('T')

class PaginatedResponse(BaseModel, Generic[T]):
    """Response wrapper for paginated results."""

    items: List[T]
    total: int
    page: int
    size: int
    pages: int
    has_next: bool
    has_prev: bool
    next_page: Optional[int] = None
    prev_page: Optional[int] = None

class PaginationParams:
    """Parameters for pagination."""

    def __init__(
        self,
        page: int = 1,
        size: int = 10,
        sort_by: str = "created_at",
        sort_order: str = "desc"
    ):
        self.page = page
        self.size = size
        self.sort_by = sort_by
        self.sort_order = sort_order

async def paginate_query(
    db: AsyncSession,
    query: Any,
    pagination: PaginationParams,
    model: Any = None,
) -> PaginatedResponse[Any]:
    """
    Paginate an ORM query with sorting.

    Args:
        db: Database session
        query: SQLAlchemy select query
        pagination: Pagination parameters
        model: Model whose column ``pagination.sort_by`` names

    Returns:
        PaginatedResponse whose items are ORM instances
    """
    if model is not None and pagination.sort_by not in model.__table__.columns:
        raise ValidationError(
            f"Cannot sort by '{pagination.sort_by}'",
            {"sort_by": pagination.sort_by, "allowed": sorted(model.__table__.columns.keys())},
        )

    try:
        if model is not None:
            sort_col = model.__table__.columns[pagination.sort_by]
            if pagination.sort_order == "desc":
                query = query.order_by(sort_col.desc())
            else:
                query = query.order_by(sort_col.asc())
            # Stable order across pages when the sort column has ties
            if pagination.sort_by != "id" and "id" in model.__table__.columns:
                query = query.order_by(model.__table__.columns["id"].asc())

        count_query = select(func.count()).select_from(query.order_by(None).subquery())
        total = (await db.execute(count_query)).scalar() or 0

        offset = (pagination.page - 1) * pagination.size
        result = await db.execute(query.offset(offset).limit(pagination.size))
        items = result.scalars().all()

        pages = (total + pagination.size - 1) // pagination.size if total else 0
        has_next = pagination.page < pages
        has_prev = pagination.page > 1

        return PaginatedResponse(
            items=list(items),
            total=total,
            page=pagination.page,
            size=pagination.size,
            pages=pages,
            has_next=has_next,
            has_prev=has_prev,
            next_page=pagination.page + 1 if has_next else None,
            prev_page=pagination.page - 1 if has_prev else None
        )
    except Exception as e:
        logger.error(f"Error in paginate_query: {str(e)}", exc_info=True)
        raise
