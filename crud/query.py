"""A small filter/order/page DSL on top of SQLAlchemy ORM queries.

Column names come from callers as plain strings, so they are checked against
the model's own mapped columns before being turned into expressions. Values
always travel as bound parameters.
"""
import operator
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Sequence, TypeVar

from sqlalchemy import asc, desc, select, text
from sqlalchemy.orm import Session

from core.errors import BadInputError

ModelT = TypeVar("ModelT")

_OPERATORS = {
    "=": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "like": lambda col, value: col.like(value),
}


@dataclass(frozen=True)
class FilterCondition:
    column: str
    op: str
    value: Any


@dataclass(frozen=True)
class OrderByCondition:
    column: str
    direction: str = "asc"


@dataclass
class PageResult:
    total: int
    page_index: int
    page_size: int
    data: list


def _column(model, name: str):
    if name not in model.__table__.columns:
        raise BadInputError(f"unknown column {name!r} for {model.__tablename__}")
    return getattr(model, name)


def parse_page_args(page_index, page_size) -> tuple[int, int]:
    try:
        index, size = int(page_index), int(page_size)
    except (TypeError, ValueError):
        raise BadInputError(f"invalid pagination arguments: {page_index!r}, {page_size!r}") from None
    if index < 1 or size < 1:
        raise BadInputError("pageIndex and pageSize must be positive")
    return index, size


def query_by_id(db: Session, model: type[ModelT], id: str) -> ModelT | None:
    return db.query(model).filter(model.id == id).first()


def query_by_page(
    db: Session,
    model,
    page_index,
    page_size,
    filters: Sequence[FilterCondition] = (),
    orders: Sequence[OrderByCondition] = (),
) -> PageResult:
    index, size = parse_page_args(page_index, page_size)
    q = db.query(model)
    for cond in filters:
        op = _OPERATORS.get(cond.op.lower())
        if op is None:
            raise BadInputError(f"unsupported operator {cond.op!r}")
        q = q.filter(op(_column(model, cond.column), cond.value))
    total = q.count()

    clauses = []
    for order in orders:
        direction = order.direction.lower()
        if direction not in ("asc", "desc"):
            raise BadInputError(f"unsupported direction {order.direction!r}")
        col = _column(model, order.column)
        clauses.append(desc(col) if direction == "desc" else asc(col))
    # ties always resolve by primary key
    clauses.append(asc(model.id))

    rows = q.order_by(*clauses).offset((index - 1) * size).limit(size).all()
    return PageResult(total=total, page_index=index, page_size=size, data=rows)


def insert(db: Session, row):
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def update(db: Session, model, id: str, values: Mapping[str, Any], where: Mapping[str, Any] | None = None) -> int:
    """UPDATE by primary key, optionally guarded by extra equality conditions.

    Returns the number of affected rows.
    """
    q = db.query(model).filter(model.id == id)
    for name, value in (where or {}).items():
        q = q.filter(_column(model, name) == value)
    for name in values:
        _column(model, name)
    count = q.update(dict(values), synchronize_session=False)
    db.commit()
    return count


def update_field(db: Session, model, id: str, column: str, value) -> int:
    return update(db, model, id, {column: value})


def delete_by_id(db: Session, model, id: str) -> int:
    count = db.query(model).filter(model.id == id).delete(synchronize_session=False)
    db.commit()
    return count


def exec_raw(db: Session, sql: str, **params) -> int:
    result = db.execute(text(sql), params)
    db.commit()
    return result.rowcount


def search(db: Session, model: type[ModelT], sql: str, **params) -> Iterator[ModelT]:
    """Stream ORM rows for a hand-written SELECT over ``model``'s table."""
    stmt = select(model).from_statement(text(sql))
    result = db.execute(stmt, params, execution_options={"yield_per": 100})
    yield from result.scalars()
