"""
Celery tasks that fan change events out to downstream consumers (dashboards, sync jobs).
"""
import logging
from typing import Any, Dict
from app.core.celery import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="app.modules.notifications.tasks.broadcast_change", ignore_result=True)
def broadcast_change(event_type: str, payload: Dict[str, Any]):
    """
    Deliver a credit/stock change event.

    Consumers subscribe to the "notifications" queue; the task itself only
    records the delivery so it shows up in worker logs.
    """
    entity_id = payload.get("customer_id") or payload.get("product_id")
    logger.info(f"Broadcasting {event_type} for {entity_id} (by {payload.get('updated_by')})")
    return {"status": "delivered", "event_type": event_type, "entity_id": entity_id}
