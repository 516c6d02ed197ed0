"""Remediation dispatcher — maps an operator action on an alert to its effect.

Actions:
    acknowledge  open → acknowledged   (no external call)
    ignore       open → ignored        (no external call)
    delete       open → remediated     (row alerts only; deletes the row at the source first)

Every call returns a RemediationResult. Unknown actions, actions on alerts that
are no longer open, delete on a document alert, and a failed external delete
all come back as ``success=False`` with the alert left untouched. The only
exception raised is AlertNotFoundError for an unknown alert id.
"""

from __future__ import annotations

from securecoda.errors import InvalidTransitionError, SourceError
from securecoda.models.alert import Alert, AlertStatus, ResourceType
from securecoda.models.scan import RemediationResult
from securecoda.source.protocol import DocumentSource
from securecoda.store.alert_store import AlertStore
from securecoda.utils.logger import get_logger

logger = get_logger(__name__)

VALID_ACTIONS: tuple[str, ...] = ("delete", "acknowledge", "ignore")

_INVALID_ACTION_MESSAGE = "Invalid action. Use: delete, acknowledge, or ignore"


class RemediationDispatcher:
    def __init__(self, store: AlertStore, source: DocumentSource) -> None:
        self._store = store
        self._source = source

    async def remediate(self, alert_id: int, action: str) -> RemediationResult:
        """Apply ``action`` to the alert with ``alert_id``.

        Raises:
            AlertNotFoundError: No alert has ``alert_id``.
        """
        alert = self._store.get(alert_id)

        if action not in VALID_ACTIONS:
            result = RemediationResult(success=False, message=_INVALID_ACTION_MESSAGE)
        elif alert.status != AlertStatus.OPEN:
            result = RemediationResult(
                success=False, message=f"Alert is already {alert.status.value}"
            )
        elif action == "delete":
            result = await self._delete(alert)
        elif action == "acknowledge":
            result = self._transition(alert, AlertStatus.ACKNOWLEDGED, "Alert acknowledged")
        else:
            result = self._transition(alert, AlertStatus.IGNORED, "Alert ignored")

        logger.info(
            "remediation",
            alert_id=alert_id,
            action=action,
            success=result.success,
            message=result.message,
        )
        return result

    async def _delete(self, alert: Alert) -> RemediationResult:
        if alert.resource_type != ResourceType.ROW:
            return RemediationResult(
                success=False, message="Delete action only supported for table rows"
            )

        table_id = alert.metadata.get("tableId")
        if not table_id:
            return RemediationResult(
                success=False, message="Failed to delete: alert has no table id"
            )

        try:
            await self._source.delete_row(alert.doc_id, str(table_id), alert.resource_id)
        except SourceError as exc:
            return RemediationResult(success=False, message=f"Failed to delete: {exc}")

        return self._transition(alert, AlertStatus.REMEDIATED, "Row deleted successfully")

    def _transition(
        self, alert: Alert, status: AlertStatus, message: str
    ) -> RemediationResult:
        try:
            self._store.set_status(alert.id, status)
        except InvalidTransitionError as exc:
            # Another request moved the alert while this one was in flight.
            # For delete, the row is already gone at the source by this point.
            return RemediationResult(
                success=status == AlertStatus.REMEDIATED,
                message=f"{message}; alert was already {exc.current}",
            )
        return RemediationResult(success=True, message=message)
