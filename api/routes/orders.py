"""Post-booking order operations against the supplier: details, cancellation, voucher."""
import base64
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas import OrderCancelRequest, OrderInfoRequest, VoucherRequest
from core import proxy
from core.orders import transform_order
from db.database import get_db
from db.models import UserBooking
from providers.base import BaseSupplierProvider
from providers.factory import supplier_provider

router = APIRouter(prefix="/proxy/orders", tags=["orders"])
logger = logging.getLogger(__name__)


@router.get("/info")
@router.get("/cancel")
@router.get("/voucher")
async def liveness():
    return {"ok": True}


@router.post("/info")
async def order_info(body: OrderInfoRequest, provider: BaseSupplierProvider = Depends(supplier_provider)):
    logger.info("Fetching order info for %s", body.order_id)

    async def fetch():
        orders = await provider.order_info(body.order_id, body.language)
        if not orders:
            logger.info("Order not found: %s", body.order_id)
            return proxy.not_found("Order not found")
        return transform_order(orders[0])

    return await proxy.proxy_call("orders/info", fetch, degrade=False)


async def _mark_cancelled(db: AsyncSession, order_id: str, response: dict) -> int:
    now = datetime.now(timezone.utc)
    result = await db.execute(
        update(UserBooking)
        .where(UserBooking.order_id == order_id)
        .values(status="cancelled", cancelled_at=now, updated_at=now, raw_api_response=response)
    )
    await db.commit()
    return result.rowcount


@router.post("/cancel")
async def cancel_order(
    body: OrderCancelRequest,
    provider: BaseSupplierProvider = Depends(supplier_provider),
    db: AsyncSession = Depends(get_db),
):
    logger.info("Cancelling order %s", body.order_id)

    async def fetch():
        response = await provider.cancel_order(body.order_id, body.reason, body.language)
        try:
            updated = await _mark_cancelled(db, body.order_id, response)
        except SQLAlchemyError as exc:
            # Already cancelled at the supplier.
            await db.rollback()
            logger.warning("Order %s cancelled but booking row update failed: %s", body.order_id, exc)
            return response
        logger.info("Order %s cancelled; %d booking row(s) updated", body.order_id, updated)
        return response

    return await proxy.proxy_call("orders/cancel", fetch, degrade=False)


@router.post("/voucher")
async def download_voucher(body: VoucherRequest, provider: BaseSupplierProvider = Depends(supplier_provider)):
    logger.info("Downloading voucher for %s", body.partner_order_id)

    async def fetch():
        pdf = await provider.download_voucher(body.partner_order_id, body.language)
        return {
            "partner_order_id": body.partner_order_id,
            "language": body.language,
            "content_type": "application/pdf",
            "pdf_base64": base64.b64encode(pdf).decode("ascii"),
            "file_name": f"voucher-{body.partner_order_id}.pdf",
        }

    return await proxy.proxy_call("orders/voucher", fetch, degrade=False)
