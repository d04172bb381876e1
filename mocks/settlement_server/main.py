from decimal import Decimal
from itertools import count

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

app = FastAPI(title="Mock Settlement Server", version="1.0.0")
_order_ids = count(1001)
SALE_TYPES = {"full_payment", "installment_with_down", "pure_installment"}


def _cents(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"))


def _reject(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"message": message})


@app.get("/health")
def health(): return {"status": "ok"}


@app.post("/sales")
async def process_sale(request: Request):
    sale = await request.json()
    if sale.get("sale_type") not in SALE_TYPES:
        return _reject(f"invalid sale type: {sale.get('sale_type')}")
    if not sale.get("items"):
        return _reject("sale has no items")

    if sale["sale_type"] != "full_payment":
        schedule = sale.get("custom_schedule") or []
        expected = sale.get("total_with_interest")
        if expected is None:
            principal = sum(_cents(i["total"]) for i in sale["items"]) - _cents(sale["payment"]["amount"])
            expected = principal + _cents(sale.get("interest_amount"))
        if sum(_cents(s["amount"]) for s in schedule) != _cents(expected):
            return _reject("custom schedule does not match total with interest")

    return [{"new_order_id": next(_order_ids), "status": "completed"}]
