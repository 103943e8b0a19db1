from fastapi import APIRouter, Query, status
from typing import List

from app.dependencies.ledgerDependencies import ledger_dependency, notifier_dependency, actor_dependency
from app.modules.inventory.service import StockService
from app.modules.inventory.schemas import (
    Product, ProductCreate, StockSet, StockAdjust, StockAdjustment,
    StockAvailability, StockMovement
)

router = APIRouter(prefix="/products", tags=["Stock Management"])

@router.post("/", response_model=Product, status_code=status.HTTP_201_CREATED)
def register_product(product_data: ProductCreate, ledger: ledger_dependency, notifier: notifier_dependency):
    """Register a product with its initial stock snapshot."""
    return StockService(ledger, notifier).register_product(product_data)

@router.get("/low-stock", response_model=List[Product])
def get_low_stock(ledger: ledger_dependency, notifier: notifier_dependency):
    """Products at or below their minimum stock level."""
    return StockService(ledger, notifier).list_low_stock()

@router.get("/{product_id}", response_model=Product)
def get_product(product_id: str, ledger: ledger_dependency, notifier: notifier_dependency):
    return StockService(ledger, notifier).get_product(product_id)

@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(product_id: str, ledger: ledger_dependency, notifier: notifier_dependency):
    """Delete a product permanently."""
    StockService(ledger, notifier).delete_product(product_id)

@router.put("/{product_id}/stock", response_model=Product)
def set_stock(product_id: str, stock_data: StockSet, ledger: ledger_dependency, notifier: notifier_dependency):
    """Overwrite the current stock count (clamped at zero)."""
    return StockService(ledger, notifier).set_stock(product_id, stock_data.quantity)

@router.post("/{product_id}/stock/adjust", response_model=StockAdjustment)
def adjust_stock(
    product_id: str,
    adjust_data: StockAdjust,
    ledger: ledger_dependency,
    notifier: notifier_dependency,
    actor: actor_dependency
):
    """Apply an inbound/outbound stock adjustment and return the movement record."""
    service = StockService(ledger, notifier)
    return service.adjust_stock(product_id, adjust_data.adjustment, adjust_data.reason, actor)

@router.get("/{product_id}/availability", response_model=StockAvailability)
def check_availability(
    product_id: str,
    ledger: ledger_dependency,
    notifier: notifier_dependency,
    quantity: int = Query(..., ge=1)
):
    """Dry run: is there enough stock for this quantity?"""
    available = StockService(ledger, notifier).check_availability(product_id, quantity)
    return StockAvailability(product_id=product_id, quantity=quantity, available=available)

@router.get("/{product_id}/movements", response_model=List[StockMovement])
def get_movements(
    product_id: str,
    ledger: ledger_dependency,
    notifier: notifier_dependency,
    limit: int = Query(50, le=100),
    offset: int = Query(0, ge=0)
):
    """Stock movement history for a product, newest first."""
    return StockService(ledger, notifier).get_movements(product_id, limit=limit, offset=offset)
