# app/api/v1/webhooks.py
"""
Inbound Evolution API webhooks (unauthenticated).

Always answers 200 so the gateway never retries a delivery.
"""
from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool

from app.core.logging_config import get_webhook_logger
from app.services import get_webhook_service
from app.services.webhook_service import WebhookService

router = APIRouter()
log = get_webhook_logger()


@router.post("/group-participants/{instance_name}")
async def group_participants_webhook(
    instance_name: str,
    request: Request,
    service: WebhookService = Depends(get_webhook_service),
):
    try:
        payload = await request.json()
    except Exception as e:
        log.warning(f"⚠️ Unreadable webhook body for {instance_name}: {e}")
        return {"status": "ok", "message": "Invalid data"}

    message = await run_in_threadpool(service.process, instance_name, payload)
    return {"status": "ok", "message": message}
