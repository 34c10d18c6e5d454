"""
Reconciliation of external TMS shipments into the local store.

Identity is the tracking number: each remote shipment is upserted on
`tracking_number`, then its timeline is merged append-only. An event is
new unless a local row exists with the same (shipment_id, status,
timestamp), so repeated runs over unchanged data insert nothing.

The same merge serves the pull sync (records fetched from the TMS API) and
the push webhook (records posted by the TMS). A failure on one record is
logged and skipped; the batch always runs to the end.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from logitrack.core.config import settings
from logitrack.core.errors import NotFound, ValidationFailed
from logitrack.core.flow_logging import flow_info
from logitrack.crud import shipments as shipments_crud
from logitrack.crud import timeline as timeline_crud
from logitrack.schemas.tms import (
    TmsShipment,
    TmsSyncResult,
    TmsTimelineEvent,
    TmsTimelineUpdate,
    TmsWebhookResult,
)
from logitrack.services.identity_service import IdentityService
from logitrack.services.tms_client import TmsApiError, TmsClient
from logitrack.services.tms_mapper import (
    map_tms_shipment,
    map_tms_timeline_event,
    parse_event_timestamp,
)

logger = logging.getLogger(__name__)

TimelineFetcher = Callable[[str], list[TmsTimelineEvent]]

SHIPMENT_EVENTS = {"shipment.created", "shipment.updated"}
TIMELINE_EVENT = "timeline.updated"


class TmsReconciliationService:
    def __init__(
        self,
        db: Session,
        *,
        identity: IdentityService | None = None,
        max_workers: int | None = None,
    ):
        self.db = db
        self.identity = identity or IdentityService(db)
        self.max_workers = max(1, int(max_workers or settings.TMS_SYNC_MAX_WORKERS or 1))

    # -- owner resolution -------------------------------------------------

    @staticmethod
    def resolve_owner(remote: TmsShipment, email_index: dict[str, str]) -> str | None:
        if remote.client_id and remote.client_id.strip():
            return remote.client_id.strip()
        email = (remote.client_email or "").strip().lower()
        if not email:
            return None
        return email_index.get(email)

    # -- timeline merge ---------------------------------------------------

    def merge_timeline(
        self,
        shipment_id: str,
        events: Iterable[TmsTimelineEvent],
        *,
        fresh: bool = False,
    ) -> int:
        """
        Appends remote events to the shipment's timeline. For a `fresh`
        shipment every event is inserted in one batch; otherwise each event is
        checked against existing rows first. Does not commit.
        """
        rows: list[dict[str, Any]] = []
        seen: set[tuple[str, Any]] = set()
        for event in events:
            try:
                row = map_tms_timeline_event(event, shipment_id)
            except ValueError as exc:
                logger.warning(
                    "tms_timeline_event_invalid shipment_id=%s status=%s error=%s",
                    shipment_id,
                    event.status,
                    exc,
                )
                continue
            key = (row["status"], row["timestamp"])
            if key in seen:
                continue
            seen.add(key)
            rows.append(row)

        if fresh:
            return timeline_crud.bulk_insert_events(self.db, rows)

        inserted = 0
        for row in rows:
            if timeline_crud.event_exists(
                self.db,
                shipment_id=shipment_id,
                status=row["status"],
                timestamp=row["timestamp"],
            ):
                continue
            timeline_crud.bulk_insert_events(self.db, [row])
            inserted += 1
        return inserted

    # -- batch reconcile --------------------------------------------------

    def _prefetch_timelines(
        self,
        tracking_numbers: list[str],
        fetch_timeline: TimelineFetcher,
    ) -> dict[str, list[TmsTimelineEvent] | Exception]:
        def _fetch(tracking_number: str) -> list[TmsTimelineEvent] | Exception:
            try:
                return fetch_timeline(tracking_number)
            except (TmsApiError, ValueError) as exc:
                return exc

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            results = list(pool.map(_fetch, tracking_numbers))
        return dict(zip(tracking_numbers, results))

    @staticmethod
    def _is_stale(remote: TmsShipment, since: str | None) -> bool:
        if not since or not remote.updated_at:
            return False
        try:
            return parse_event_timestamp(remote.updated_at) < parse_event_timestamp(since)
        except ValueError:
            return False

    def _timeline_for(
        self,
        remote: TmsShipment,
        prefetched: dict[str, list[TmsTimelineEvent] | Exception],
        fetch_timeline: TimelineFetcher | None,
    ) -> list[TmsTimelineEvent]:
        if remote.tracking_number in prefetched:
            result = prefetched[remote.tracking_number]
            if isinstance(result, Exception):
                raise result
            return result
        if fetch_timeline is not None:
            return fetch_timeline(remote.tracking_number)
        return list(remote.timeline or [])

    def reconcile(
        self,
        remote_shipments: list[TmsShipment],
        *,
        since: str | None = None,
        fetch_timeline: TimelineFetcher | None = None,
    ) -> TmsSyncResult:
        result = TmsSyncResult(synced=len(remote_shipments))
        if not remote_shipments:
            return result

        email_index = self.identity.email_index()
        plan: list[tuple[TmsShipment, str]] = []
        for remote in remote_shipments:
            if self._is_stale(remote, since):
                result.skipped += 1
                flow_info(logger, "tms_sync_shipment_stale tracking_number=%s", remote.tracking_number, category="tms")
                continue
            owner_id = self.resolve_owner(remote, email_index)
            if not owner_id:
                result.skipped += 1
                logger.warning(
                    "tms_sync_shipment_skipped tracking_number=%s reason=client_not_found",
                    remote.tracking_number,
                )
                continue
            plan.append((remote, owner_id))

        prefetched: dict[str, list[TmsTimelineEvent] | Exception] = {}
        if fetch_timeline is not None and self.max_workers > 1 and plan:
            prefetched = self._prefetch_timelines([r.tracking_number for r, _ in plan], fetch_timeline)

        for remote, owner_id in plan:
            try:
                shipment_id, created = shipments_crud.upsert_shipment(
                    self.db, map_tms_shipment(remote, owner_id)
                )
                self.db.commit()
            except SQLAlchemyError:
                self.db.rollback()
                result.skipped += 1
                logger.exception("tms_sync_shipment_failed tracking_number=%s", remote.tracking_number)
                continue

            if created:
                result.created += 1
            else:
                result.updated += 1

            try:
                events = self._timeline_for(remote, prefetched, fetch_timeline)
                inserted = self.merge_timeline(shipment_id, events, fresh=created)
                self.db.commit()
            except (TmsApiError, ValueError) as exc:
                self.db.rollback()
                logger.warning(
                    "tms_sync_timeline_failed tracking_number=%s error=%s",
                    remote.tracking_number,
                    exc,
                )
                continue
            except SQLAlchemyError:
                self.db.rollback()
                logger.exception("tms_sync_timeline_failed tracking_number=%s", remote.tracking_number)
                continue

            flow_info(
                logger,
                "tms_sync_shipment_merged tracking_number=%s created=%s timeline_inserted=%s",
                remote.tracking_number,
                created,
                inserted,
                category="tms",
            )

        logger.info(
            "tms_sync_completed synced=%s created=%s updated=%s skipped=%s",
            result.synced,
            result.created,
            result.updated,
            result.skipped,
        )
        return result

    def sync_from_tms(
        self,
        client: TmsClient,
        *,
        client_id: str | None = None,
        updated_since: str | None = None,
    ) -> TmsSyncResult:
        remote_shipments = client.get_shipments(client_id=client_id, updated_since=updated_since)
        return self.reconcile(
            remote_shipments,
            since=updated_since,
            fetch_timeline=client.get_timeline_events,
        )

    # -- webhook ----------------------------------------------------------

    def apply_webhook(self, event: str, data: dict[str, Any]) -> TmsWebhookResult:
        if event in SHIPMENT_EVENTS:
            return self._apply_shipment_event(event, data)
        if event == TIMELINE_EVENT:
            return self._apply_timeline_event(event, data)
        raise ValidationFailed("Unknown event type")

    def _apply_shipment_event(self, event: str, data: dict[str, Any]) -> TmsWebhookResult:
        try:
            remote = TmsShipment.model_validate(data)
        except ValidationError as exc:
            raise ValidationFailed("Missing required fields") from exc

        email_index = self.identity.email_index() if not remote.client_id else {}
        owner_id = self.resolve_owner(remote, email_index)
        if not owner_id or self.identity.get_user(owner_id) is None:
            raise NotFound("Client not found")

        shipment_id, created = shipments_crud.upsert_shipment(self.db, map_tms_shipment(remote, owner_id))
        inserted = 0
        if remote.timeline:
            inserted = self.merge_timeline(shipment_id, remote.timeline, fresh=created)
        self.db.commit()

        logger.info(
            "tms_webhook_shipment_applied event=%s tracking_number=%s created=%s timeline_inserted=%s",
            event,
            remote.tracking_number,
            created,
            inserted,
        )
        return TmsWebhookResult(
            event=event,
            shipment_id=shipment_id,
            created=created,
            timeline_inserted=inserted,
        )

    def _apply_timeline_event(self, event: str, data: dict[str, Any]) -> TmsWebhookResult:
        try:
            update = TmsTimelineUpdate.model_validate(data)
        except ValidationError as exc:
            raise ValidationFailed("Invalid timeline data") from exc

        shipment = shipments_crud.get_shipment_by_tracking_number(self.db, update.tracking_number)
        if shipment is None:
            raise NotFound("Shipment not found")

        inserted = self.merge_timeline(shipment.id, update.events)
        self.db.commit()

        logger.info(
            "tms_webhook_timeline_applied tracking_number=%s timeline_inserted=%s",
            update.tracking_number,
            inserted,
        )
        return TmsWebhookResult(event=event, shipment_id=shipment.id, timeline_inserted=inserted)
