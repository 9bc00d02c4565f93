"""
PMS reconciliation: one-way pull of reservations and guests into the store.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from proactive_calls import metrics
from proactive_calls.clock import ensure_aware
from proactive_calls.config import Config
from proactive_calls.db_models import ReservationStatus
from proactive_calls.logging_config import get_logger
from proactive_calls.models import PMSReservation, SyncResult
from proactive_calls.pms_client import PMSClient
from proactive_calls.services import GuestService, ReservationService

logger = get_logger(__name__)


def normalize_status(token: str) -> ReservationStatus:
    """Map a PMS status token (``checked-in``, ``CHECKED_IN``...) to ReservationStatus."""
    return ReservationStatus(token.strip().lower().replace("-", "_").replace(" ", "_"))


class PMSReconciler:
    """Merges the PMS booking horizon into the local store."""

    def __init__(self, cfg: Config, client: PMSClient):
        self.config = cfg
        self.client = client

    def sync(self, db: Session, now: Optional[datetime] = None) -> SyncResult:
        """
        Pull reservations from (now - lookback) to (now + lookahead) and upsert them.

        A failing reservation is counted and skipped; a failure to reach the
        PMS at all is reported as a single error.
        """
        if not self.client.is_configured:
            logger.info("pms_sync_skipped", reason="pms_not_configured")
            return SyncResult(synced=0, errors=0)

        now = ensure_aware(now)
        start = now - timedelta(days=self.config.PMS_LOOKBACK_DAYS)
        end = now + timedelta(days=self.config.PMS_LOOKAHEAD_DAYS)

        try:
            payloads = self.client.list_reservations(start, end)
        except Exception as e:
            logger.error("pms_fetch_failed", error=str(e))
            metrics.pms_sync_reservations.labels(outcome="fetch_error").inc()
            return SyncResult(synced=0, errors=1)

        result = SyncResult()
        for payload in payloads:
            try:
                self._sync_reservation(db, payload)
                result.synced += 1
                metrics.pms_sync_reservations.labels(outcome="synced").inc()
            except Exception:
                db.rollback()
                result.errors += 1
                metrics.pms_sync_reservations.labels(outcome="error").inc()
                logger.exception("pms_reservation_sync_failed", external_id=_payload_id(payload))

        logger.info("pms_sync_completed", synced=result.synced, errors=result.errors, fetched=len(payloads))
        return result

    def _sync_reservation(self, db: Session, payload: Dict[str, Any]) -> None:
        pms_reservation = PMSReservation.model_validate(payload)
        status = normalize_status(pms_reservation.status)

        pms_guest = self.client.get_guest(pms_reservation.guest_id)
        guest = GuestService.resolve_pms_guest(db, pms_guest)

        ReservationService.upsert_from_pms(db, pms_reservation, guest_id=guest.id, status=status)


def _payload_id(payload: Any) -> Optional[str]:
    return payload.get("id") if isinstance(payload, dict) else None
