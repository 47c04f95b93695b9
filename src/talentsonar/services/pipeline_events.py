"""
Pipeline Event Log.

Append-only record of what happened to a candidate in each job pipeline
(stage moves, screenings, outreach sent, ...). The next-action suggestion reads
it back to infer stages.

Storage:
    DynamoDB when DYNAMODB_TABLE_NAME is set. Items are partitioned by
    candidate_id and sorted by `sk` = "<created_at ISO>#<event id>", so a
    descending query returns the newest events first.

    Without a table, or when a DynamoDB call fails, events go to an in-memory
    store instead. Logging a pipeline event never fails a request. Listings
    merge both stores.

Environment Variables:
    DYNAMODB_TABLE_NAME: Pipeline events table (optional)

Note:
    The boto3 resource is created lazily so importing this module needs no AWS
    credentials.
"""

import json
import threading
import uuid
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from talentsonar.config import settings
from talentsonar.config.schemas import PipelineEventCreate, PipelineEventRecord, utc_now
from talentsonar.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_LIST_LIMIT = 50


def _to_item(record: PipelineEventRecord) -> Dict[str, Any]:
    created_at = record.created_at.isoformat()
    item = {
        "candidate_id": record.candidate_id,
        "sk": f"{created_at}#{record.id}",
        "id": record.id,
        "job_id": record.job_id,
        "event_type": record.event_type,
        "actor_type": record.actor_type,
        "summary": record.summary,
        # JSON-encoded; DynamoDB rejects Python floats
        "metadata": json.dumps(record.metadata, default=str),
        "created_at": created_at,
    }
    for field in ("candidate_name", "job_title", "actor_id", "from_stage", "to_stage"):
        value = getattr(record, field)
        if value is not None:
            item[field] = value
    return item


def _from_item(item: Dict[str, Any]) -> PipelineEventRecord:
    return PipelineEventRecord(
        id=item["id"],
        candidate_id=item["candidate_id"],
        candidate_name=item.get("candidate_name"),
        job_id=item["job_id"],
        job_title=item.get("job_title"),
        event_type=item["event_type"],
        actor_type=item.get("actor_type", "system"),
        actor_id=item.get("actor_id"),
        from_stage=item.get("from_stage"),
        to_stage=item.get("to_stage"),
        summary=item.get("summary", ""),
        metadata=json.loads(item["metadata"]) if item.get("metadata") else {},
        created_at=datetime.fromisoformat(item["created_at"]),
    )


class PipelineEventService:
    """Pipeline event log with DynamoDB persistence and in-memory fallback.

    Args:
        table_name: DynamoDB table. Defaults to DYNAMODB_TABLE_NAME; empty
            means in-memory only.
        dynamodb_resource: Pre-built boto3 resource (tests pass a MagicMock).
    """

    def __init__(
        self,
        table_name: Optional[str] = None,
        dynamodb_resource: Optional[Any] = None,
    ):
        self.table_name = settings.DYNAMODB_TABLE_NAME if table_name is None else table_name
        self._dynamodb_resource = dynamodb_resource
        self._memory: Dict[str, List[PipelineEventRecord]] = defaultdict(list)
        self._lock = threading.Lock()

    def _get_table(self) -> Optional[Any]:
        if not self.table_name:
            return None
        if self._dynamodb_resource is None:
            self._dynamodb_resource = boto3.resource("dynamodb")
        return self._dynamodb_resource.Table(self.table_name)

    def log_event(self, event: PipelineEventCreate) -> PipelineEventRecord:
        record = PipelineEventRecord(
            **event.model_dump(), id=uuid.uuid4().hex, created_at=utc_now()
        )

        try:
            table = self._get_table()
            if table is not None:
                table.put_item(Item=_to_item(record))
                logger.info(
                    "Stored pipeline event",
                    extra={
                        "extra_fields": {
                            "candidate_id": record.candidate_id,
                            "job_id": record.job_id,
                            "event_type": record.event_type,
                        }
                    },
                )
                return record
        except (BotoCoreError, ClientError) as e:
            logger.warning(
                "Failed to store pipeline event in DynamoDB; using in-memory store",
                extra={
                    "extra_fields": {
                        "candidate_id": record.candidate_id,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    }
                },
            )

        with self._lock:
            self._memory[record.candidate_id].append(record)
        return record

    def list_for_candidate(
        self, candidate_id: str, limit: int = DEFAULT_LIST_LIMIT
    ) -> List[PipelineEventRecord]:
        """Newest-first events for a candidate across both stores."""
        events = self._list_from_dynamodb(candidate_id, limit)
        with self._lock:
            events.extend(self._memory.get(candidate_id, []))

        seen = set()
        unique = []
        for event in sorted(events, key=lambda e: e.created_at, reverse=True):
            if event.id in seen:
                continue
            seen.add(event.id)
            unique.append(event)
        return unique[:limit]

    def _list_from_dynamodb(self, candidate_id: str, limit: int) -> List[PipelineEventRecord]:
        try:
            table = self._get_table()
            if table is None:
                return []
            response = table.query(
                KeyConditionExpression=Key("candidate_id").eq(candidate_id),
                ScanIndexForward=False,
                Limit=limit,
            )
            return [_from_item(item) for item in response.get("Items", [])]
        except (BotoCoreError, ClientError) as e:
            logger.warning(
                "Failed to read pipeline events from DynamoDB",
                extra={
                    "extra_fields": {
                        "candidate_id": candidate_id,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    }
                },
            )
            return []


_pipeline_event_service: Optional[PipelineEventService] = None


def get_pipeline_event_service() -> PipelineEventService:
    global _pipeline_event_service
    if _pipeline_event_service is None:
        _pipeline_event_service = PipelineEventService()
    return _pipeline_event_service
