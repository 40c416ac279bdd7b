"""Conversion of pipeline results into wine inventory records.

Records use the column names of the inventory database; every record is
marked as in stock and dated with the purchase day.
"""

from datetime import date

from winedoc.pipeline.results import LabelDocument, PipelineResult, ReceiptDocument

STATUS_IN_STOCK = "In Stock"
UNKNOWN_WINE = "Unknown Wine"

RECORD_COLUMNS = [
    "Name",
    "Vintage",
    "Producer",
    "Region",
    "Price",
    "Quantity",
    "Store",
    "Varietal(품종)",
    "Appellation(원산지명칭)",
    "Image",
    "Status",
    "Purchase date",
]


def _system_fields(purchase_date: str) -> dict[str, object]:
    return {"Status": STATUS_IN_STOCK, "Purchase date": purchase_date}


def build_records(
    result: PipelineResult,
    today: date | None = None,
    image_ref: str | None = None,
) -> list[dict[str, object]]:
    """Build inventory records from a processed document.

    A label yields one record; a receipt yields one record per line item
    and is dated with the receipt date when one was found. Unknown
    documents yield no records.

    Args:
        result: Pipeline output.
        today: Purchase date fallback. Defaults to the current date.
        image_ref: Source image stored in the ``Image`` column.

    Returns:
        Records keyed by inventory column name.
    """
    today_str = (today or date.today()).isoformat()
    document = result.document

    if isinstance(document, LabelDocument):
        fields = document.fields
        varietals = [v for v in (fields.variety or "").split(", ") if v]
        record = {
            "Name": fields.name or UNKNOWN_WINE,
            "Vintage": fields.vintage,
            "Producer": fields.producer or "",
            "Region": fields.region or "",
            "Price": None,
            "Quantity": 1,
            "Store": "",
            "Varietal(품종)": varietals,
            "Appellation(원산지명칭)": fields.appellation or "",
            "Image": image_ref,
        }
        record.update(_system_fields(today_str))
        return [record]

    if isinstance(document, ReceiptDocument):
        fields = document.fields
        purchase_date = fields.date or today_str
        records = []
        for item in fields.items:
            record = {
                "Name": item.name,
                "Vintage": item.vintage,
                "Producer": "",
                "Region": "",
                "Price": item.price,
                "Quantity": item.quantity,
                "Store": fields.store or "",
                "Varietal(품종)": [],
                "Appellation(원산지명칭)": "",
                "Image": image_ref,
            }
            record.update(_system_fields(purchase_date))
            records.append(record)
        return records

    return []
