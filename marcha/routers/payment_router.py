# routers/payment_router.py
import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from marcha.core.config import Settings
from marcha.core.midtrans import MidtransClient, MidtransError
from marcha.models.charge_model import ChargeRequest
from marcha.routers.deps import get_app_settings, get_gateway, get_orchestrator
from marcha.services.errors import MalformedPayload, StoreUnavailable
from marcha.services.orchestrator import ReconciliationOrchestrator
from marcha.utils.firebase import firestore_run

router = APIRouter(tags=["Transaction"])
logger = logging.getLogger("marcha")


# ========================================
# CHECKOUT — SNAP TRANSACTION TOKEN
# ========================================
@router.post("/charge", status_code=status.HTTP_200_OK)
async def charge(
    req: ChargeRequest,
    gateway: MidtransClient = Depends(get_gateway),
    settings: Settings = Depends(get_app_settings),
):
    order_id = f"{settings.ORDER_ID_PREFIX}{req.order_id}"
    parameter = {
        "transaction_details": {
            "order_id": order_id,
            "gross_amount": req.gross_amount,
        },
        "customer_details": req.customers.model_dump(exclude_none=True),
        "item_details": [item.model_dump() for item in req.items],
    }
    if req.url:
        parameter["callbacks"] = {"finish": req.url}

    try:
        data = await gateway.create_transaction_token(parameter)
    except MidtransError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

    return {
        "token": data["token"],
        "redirect_url": data.get("redirect_url"),
        "order_id": order_id,
        "client_key": gateway.client_key,
    }


# ========================================
# TRANSACTION DETAIL (gateway status proxy)
# ========================================
@router.get("/det/{transaction_id}")
async def transaction_detail(transaction_id: str, gateway: MidtransClient = Depends(get_gateway)):
    try:
        return await gateway.get_transaction_status(transaction_id)
    except MidtransError as e:
        logger.warning(f"Status lookup failed for {transaction_id}: {e.message}")
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"status_code": "404", "status_message": "Transaction id not found"},
        )


# ========================================
# MIDTRANS NOTIFICATION WEBHOOK
# ========================================
@router.post("/notification_handler", status_code=status.HTTP_200_OK)
async def notification_handler(
    request: Request,
    orchestrator: ReconciliationOrchestrator = Depends(get_orchestrator),
    gateway: MidtransClient = Depends(get_gateway),
    settings: Settings = Depends(get_app_settings),
):
    try:
        payload = await request.json()
    except ValueError:
        raise MalformedPayload("Notification body is not valid JSON")

    # === 1. Validate Signature ===
    if settings.MIDTRANS_VERIFY_SIGNATURE and isinstance(payload, dict):
        if not gateway.verify_signature(payload):
            logger.warning(f"Invalid Midtrans signature for {payload.get('order_id')}")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")

    # === 2. Reconcile (one Firestore transaction) ===
    budget = settings.FIRESTORE_TIMEOUT * settings.FIRESTORE_MAX_ATTEMPTS
    try:
        result = await firestore_run(orchestrator.handle_notification, payload, timeout=budget)
    except asyncio.TimeoutError:
        order_id = payload.get("order_id") if isinstance(payload, dict) else None
        raise StoreUnavailable(f"Reconciliation timed out after {budget:g}s; outcome unknown", order_id=order_id)

    return result.acknowledgment()
