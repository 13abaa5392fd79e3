from sqlalchemy.orm import Session

from crud import query
from crud.query import FilterCondition, OrderByCondition, PageResult
from models.asset import Asset
from models.base import utcnow
from models.project import PUBLIC, STATUS_ACTIVE


def get_asset(db: Session, asset_id: str) -> Asset | None:
    asset = query.query_by_id(db, Asset, asset_id)
    if asset is None or asset.status != STATUS_ACTIVE:
        return None
    return asset


def list_assets(
    db: Session,
    page_index,
    page_size,
    asset_type: str,
    category: str | None = None,
    order_by_time: bool = False,
    order_by_hot: bool = False,
    user_id: str | None = None,
) -> PageResult:
    """Public assets when ``user_id`` is None, otherwise everything the user owns."""
    wheres = [FilterCondition("asset_type", "=", asset_type)]
    if user_id is None:
        wheres.append(FilterCondition("is_public", "=", PUBLIC))
    if category:
        wheres.append(FilterCondition("category", "=", category))
    if user_id is not None:
        wheres.append(FilterCondition("author_id", "=", user_id))
    wheres.append(FilterCondition("status", "=", STATUS_ACTIVE))

    orders = []
    if order_by_time:
        orders.append(OrderByCondition("c_time", "desc"))
    if order_by_hot:
        orders.append(OrderByCondition("click_count", "desc"))
    return query.query_by_page(db, Asset, page_index, page_size, wheres, orders)


def search_assets(db: Session, name: str, asset_type: str, user_id: str | None = None) -> list[Asset]:
    params = {"pattern": f"%{name}%", "asset_type": asset_type, "public": PUBLIC, "active": STATUS_ACTIVE}
    if user_id:
        sql = (
            "SELECT * FROM asset WHERE name LIKE :pattern AND asset_type = :asset_type "
            "AND status = :active AND (is_public = :public OR author_id = :user_id) ORDER BY id"
        )
        params["user_id"] = user_id
    else:
        sql = (
            "SELECT * FROM asset WHERE name LIKE :pattern AND asset_type = :asset_type "
            "AND status = :active AND is_public = :public ORDER BY id"
        )
    return list(query.search(db, Asset, sql, **params))


def add_asset(db: Session, asset: Asset) -> Asset:
    return query.insert(db, asset)


def update_asset_content(db: Session, asset_id: str, name: str, category: str, address: str) -> int:
    return query.update(
        db,
        Asset,
        asset_id,
        {"name": name, "category": category, "address": address, "u_time": utcnow()},
    )


def update_asset_is_public(db: Session, asset_id: str, is_public: int, user_id: str) -> int:
    return query.update(
        db,
        Asset,
        asset_id,
        {"is_public": is_public, "u_time": utcnow()},
        where={"author_id": user_id, "status": STATUS_ACTIVE},
    )


def increment_click_count(db: Session, asset_id: str, asset_type: str) -> int:
    return query.exec_raw(
        db,
        "UPDATE asset SET click_count = click_count + 1 WHERE id = :id AND asset_type = :asset_type",
        id=asset_id,
        asset_type=asset_type,
    )
