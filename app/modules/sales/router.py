from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from app.dependencies.ledgerDependencies import ledger_dependency, notifier_dependency, actor_dependency
from app.modules.sales.admission import AdmissionController
from app.modules.sales.service import SaleService
from app.modules.sales.schemas import SaleRequest, SaleDecision, SaleResult

router = APIRouter(prefix="/sales", tags=["Sales"])


@router.post("/evaluate", response_model=SaleDecision)
def evaluate_sale(sale_data: SaleRequest, ledger: ledger_dependency, notifier: notifier_dependency):
    """
    Evaluate a multi-line sale without committing it

    Admissible only when every line has stock and the credit check passes.
    """
    return AdmissionController(ledger, notifier).evaluate_sale(sale_data.customer_id, sale_data.lines)


@router.post("/", response_model=SaleResult, status_code=status.HTTP_201_CREATED)
def place_sale(sale_data: SaleRequest, ledger: ledger_dependency,
               notifier: notifier_dependency, actor: actor_dependency):
    """
    Place a sale: admission check, stock decrease per line and invoice issuance

    A rejected sale returns 400 with the full decision and changes nothing.
    """
    result = SaleService(ledger, notifier).place_sale(sale_data.customer_id, sale_data.lines, actor=actor)
    if result.invoice is None:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "detail": "Sale rejected by admission control",
                "code": "sale_rejected",
                "decision": jsonable_encoder(result.decision)
            }
        )
    return result
