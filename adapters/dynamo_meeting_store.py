"""
DynamoDB-backed meeting store adapter.

Implements MeetingStorePort using boto3 for the meetings table.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import BotoCoreError, ClientError

from domain.models import Meeting, MeetingStatus, utc_now
from shared_utils.constants import LogScope
from shared_utils.error_handler import MeetingNotFoundError, StoreUnavailableError
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.ADAPTER)

_CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


class DynamoMeetingStoreAdapter:
    """Amazon DynamoDB implementation of MeetingStorePort.

    Table key: ``id`` (partition key, no sort key).
    """

    def __init__(
        self,
        table_name: str,
        region: str = "eu-west-2",
        endpoint_url: str = "",
        dynamodb_resource: Optional[object] = None,
    ) -> None:
        self._table_name = table_name
        resource_kwargs: dict = {"region_name": region}
        if endpoint_url:
            resource_kwargs["endpoint_url"] = endpoint_url
        self._dynamo = dynamodb_resource or boto3.resource(
            "dynamodb", **resource_kwargs
        )
        self._table = self._dynamo.Table(table_name)

    # ------------------------------------------------------------------
    # MeetingStorePort implementation
    # ------------------------------------------------------------------

    def create(self, creator_id: str) -> Meeting:
        """Create an active meeting with a generated id."""
        meeting = Meeting(
            id=uuid.uuid4().hex,
            creator_id=creator_id,
            status=MeetingStatus.ACTIVE,
            created_at=utc_now(),
        )
        try:
            self._table.put_item(
                Item=self._to_dynamo_item(meeting),
                ConditionExpression=Attr("id").not_exists(),
            )
            logger.info(
                "dynamo_meeting_created",
                meeting_id=meeting.id,
                creator_id=creator_id,
            )
            return meeting
        except (ClientError, BotoCoreError) as exc:
            logger.error(
                "dynamo_create_meeting_failed",
                creator_id=creator_id,
                error=str(exc),
            )
            raise StoreUnavailableError(
                f"Failed to create meeting: {exc}"
            ) from exc

    def get_by_id(self, meeting_id: str) -> Optional[Meeting]:
        """Retrieve a single meeting by id."""
        try:
            response = self._table.get_item(Key={"id": meeting_id})
        except (ClientError, BotoCoreError) as exc:
            logger.error(
                "dynamo_get_meeting_failed",
                meeting_id=meeting_id,
                error=str(exc),
            )
            raise StoreUnavailableError(
                f"Failed to get meeting: {exc}"
            ) from exc

        item = response.get("Item")
        if item is None:
            logger.info("dynamo_meeting_not_found", meeting_id=meeting_id)
            return None
        return self._from_dynamo_item(item)

    def update_status(self, meeting_id: str, status: MeetingStatus) -> None:
        """Set status; the condition rejects ids that do not exist."""
        try:
            self._table.update_item(
                Key={"id": meeting_id},
                UpdateExpression="SET #s = :s",
                ConditionExpression=Attr("id").exists(),
                ExpressionAttributeNames={"#s": "status"},
                ExpressionAttributeValues={":s": status.value},
            )
            logger.info(
                "dynamo_update_status",
                meeting_id=meeting_id,
                status=status.value,
            )
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") == _CONDITIONAL_CHECK_FAILED:
                raise MeetingNotFoundError(meeting_id) from exc
            logger.error(
                "dynamo_update_status_failed",
                meeting_id=meeting_id,
                error=str(exc),
            )
            raise StoreUnavailableError(
                f"Failed to update status: {exc}"
            ) from exc
        except BotoCoreError as exc:
            logger.error(
                "dynamo_update_status_failed",
                meeting_id=meeting_id,
                error=str(exc),
            )
            raise StoreUnavailableError(
                f"Failed to update status: {exc}"
            ) from exc

    def delete(self, meeting_id: str) -> None:
        """Delete a meeting record (administrative purge, not called by the relay)."""
        try:
            self._table.delete_item(Key={"id": meeting_id})
            logger.info("dynamo_meeting_deleted", meeting_id=meeting_id)
        except (ClientError, BotoCoreError) as exc:
            logger.error(
                "dynamo_delete_meeting_failed",
                meeting_id=meeting_id,
                error=str(exc),
            )
            raise StoreUnavailableError(
                f"Failed to delete meeting: {exc}"
            ) from exc

    def list_by_status(self, status: MeetingStatus) -> List[Meeting]:
        """Scan for meetings at *status* (fine for the sweep's scale)."""
        scan_kwargs: Dict[str, Any] = {
            "FilterExpression": Attr("status").eq(status.value),
        }
        items: List[Dict[str, Any]] = []
        try:
            # Handle pagination
            while True:
                response = self._table.scan(**scan_kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if last_key is None:
                    break
                scan_kwargs["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as exc:
            logger.error("dynamo_list_meetings_failed", error=str(exc))
            raise StoreUnavailableError(
                f"Failed to list meetings: {exc}"
            ) from exc

        logger.info("dynamo_list_meetings", status=status.value, results=len(items))
        return [self._from_dynamo_item(item) for item in items]

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _to_dynamo_item(meeting: Meeting) -> Dict[str, Any]:
        """Convert domain Meeting → DynamoDB item dict."""
        return {
            "id": meeting.id,
            "creator_id": meeting.creator_id,
            "status": meeting.status.value,
            "created_at": meeting.created_at.isoformat(),
        }

    @staticmethod
    def _from_dynamo_item(item: Dict[str, Any]) -> Meeting:
        """Convert DynamoDB item dict → domain Meeting."""
        created_raw = item.get("created_at")
        created_at = datetime.fromisoformat(created_raw) if created_raw else utc_now()
        return Meeting(
            id=item["id"],
            creator_id=item.get("creator_id", ""),
            status=MeetingStatus(item.get("status", MeetingStatus.ACTIVE.value)),
            created_at=created_at,
        )
