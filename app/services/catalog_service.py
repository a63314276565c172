from sqlmodel import Session

from app.constants.order_status import ItemType
from app.exceptions import ItemNotFound
from app.models.catalog import Course, TestSeries, Ebook, StudyMaterial

CATALOG_MODELS = {
    ItemType.course: Course,
    ItemType.test_series: TestSeries,
    ItemType.ebook: Ebook,
    ItemType.study_material: StudyMaterial,
}


def parse_item_type(item_type, item_ref: int = None) -> ItemType:
    try:
        return ItemType(item_type)
    except ValueError:
        raise ItemNotFound(str(item_type), item_ref)


def get_catalog_item(session: Session, item_type, item_ref: int):
    item_type = parse_item_type(item_type, item_ref)
    item = session.get(CATALOG_MODELS[item_type], item_ref)

    if item is None or not item.is_active:
        raise ItemNotFound(item_type.value, item_ref)

    return item


def get_price(session: Session, item_type, item_ref: int) -> int:
    """Authoritative price in paise; client supplied amounts are never used"""
    return get_catalog_item(session, item_type, item_ref).price
