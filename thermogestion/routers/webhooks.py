from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from thermogestion.core.errors import WebhookNotConfigured, WebhookSignatureError
from thermogestion.core.logging_config import logger
from thermogestion.core.settings import settings
from thermogestion.db import get_db
from thermogestion.services.stripe_webhooks import WebhookDispatcher, verify_event

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.post("/stripe")
async def stripe_webhook(request: Request, db: Session = Depends(get_db)):
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    try:
        event = verify_event(payload, signature, settings)
    except WebhookNotConfigured:
        raise HTTPException(status_code=503, detail="Stripe not configured")
    except WebhookSignatureError as e:
        logger.warning("webhook_rejected", reason=e.message)
        raise HTTPException(status_code=400, detail=e.message)

    try:
        WebhookDispatcher(db, settings).dispatch(event)
    except Exception:
        # dispatcher already rolled back and logged; Stripe retries on 5xx
        raise HTTPException(status_code=500, detail="Webhook handler failed")

    return {"received": True}
