# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Execution Store - persistence for workflow runs and node logs.

The engine talks to the ExecutionStore interface only. Two back-ends:

    InMemoryExecutionStore - process-local, used by tests and the default API
    FileExecutionStore     - one directory per run, plain text on disk:

        executions/
        └── {execution_id}/
            ├── execution.json   (run record, rewritten on every update)
            └── logs.jsonl       (node events, append-only)

Every write completes before the call returns; resuming a run relies on the
last persisted node_results snapshot.
"""

import asyncio
import json
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles
import aiofiles.os

from flowrunner.core.errors import NotFoundError, ValidationError
from flowrunner.core.logging import get_service_logger
from flowrunner.workflow.exceptions import ExecutionStateError
from flowrunner.workflow.models import (
    ExecutionRecord,
    ExecutionStatus,
    NodeExecutionResult,
    NodeLogRecord,
    NodeLogStatus,
    utc_now,
)

logger = get_service_logger("execution_store")

_EXECUTION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+$")


def apply_status(
    record: ExecutionRecord,
    status: ExecutionStatus,
    output_data: Any = None,
    error_message: Optional[str] = None,
    error_node_id: Optional[str] = None,
    node_results: Optional[Dict[str, Any]] = None,
    duration_ms: Optional[int] = None,
    node_runs: Optional[Dict[str, NodeExecutionResult]] = None,
) -> ExecutionRecord:
    """
    Apply a status transition to a record.

    Raises:
        ExecutionStateError: If the record is already terminal
    """
    if record.status.is_terminal:
        raise ExecutionStateError(
            f"Execution {record.execution_id} is already {record.status.value}",
            execution_id=record.execution_id,
        )

    now = utc_now()
    updates: Dict[str, Any] = {"status": status, "updated_at": now}

    if status.is_terminal:
        updates["completed_at"] = now
    if output_data is not None:
        updates["output_data"] = output_data
    if error_message is not None:
        updates["error_message"] = error_message
    if error_node_id is not None:
        updates["error_node_id"] = error_node_id
    if node_results:
        updates["node_results"] = node_results
    if duration_ms is not None:
        updates["duration_ms"] = duration_ms
    if node_runs:
        updates["node_runs"] = node_runs

    return record.model_copy(update=updates)


def apply_progress(
    record: ExecutionRecord,
    current_node_id: str,
    node_results: Dict[str, Any],
    node_runs: Optional[Dict[str, NodeExecutionResult]] = None,
) -> ExecutionRecord:
    """Record the last completed node, the ResultMap snapshot and per-node results"""
    if record.status.is_terminal:
        raise ExecutionStateError(
            f"Execution {record.execution_id} is already {record.status.value}",
            execution_id=record.execution_id,
        )
    return record.model_copy(update={
        "current_node_id": current_node_id,
        "node_results": node_results,
        "node_runs": dict(node_runs) if node_runs is not None else record.node_runs,
        "updated_at": utc_now(),
    })


def build_node_log(
    execution_id: str,
    node_id: str,
    node_type: str,
    status: NodeLogStatus,
    payload: Any = None,
    duration_ms: Optional[int] = None,
) -> NodeLogRecord:
    """
    Build a node log record.

    The payload is the node input for `started`, the node output for
    `completed` and the error message for `failed`.
    """
    status = NodeLogStatus(status)
    fields: Dict[str, Any] = {}
    if status == NodeLogStatus.STARTED:
        fields["input_data"] = payload
    elif status == NodeLogStatus.COMPLETED:
        fields["output_data"] = payload
    else:
        fields["error_message"] = None if payload is None else str(payload)

    return NodeLogRecord(
        execution_id=execution_id,
        node_id=node_id,
        node_type=node_type,
        status=status,
        duration_ms=duration_ms,
        **fields,
    )


class ExecutionStore(ABC):
    """Persistence sink for run records and node events"""

    @abstractmethod
    async def create_run(self, record: ExecutionRecord) -> ExecutionRecord:
        """Persist a new run record"""

    @abstractmethod
    async def update_run_status(
        self,
        execution_id: str,
        status: ExecutionStatus,
        output_data: Any = None,
        error_message: Optional[str] = None,
        error_node_id: Optional[str] = None,
        node_results: Optional[Dict[str, Any]] = None,
        duration_ms: Optional[int] = None,
        node_runs: Optional[Dict[str, NodeExecutionResult]] = None,
    ) -> ExecutionRecord:
        """Transition a run to a new status"""

    @abstractmethod
    async def update_run_progress(
        self,
        execution_id: str,
        current_node_id: str,
        node_results: Dict[str, Any],
        node_runs: Optional[Dict[str, NodeExecutionResult]] = None,
    ) -> None:
        """Persist the incremental ResultMap snapshot and per-node results after a node finishes"""

    @abstractmethod
    async def log_node_event(
        self,
        execution_id: str,
        node_id: str,
        node_type: str,
        status: NodeLogStatus,
        payload: Any = None,
        duration_ms: Optional[int] = None,
    ) -> NodeLogRecord:
        """Append a node started/completed/failed record"""

    @abstractmethod
    async def get_run(self, execution_id: str) -> ExecutionRecord:
        """Get run by ID (raises NotFoundError)"""

    @abstractmethod
    async def list_runs(
        self,
        status: Optional[ExecutionStatus] = None,
        workflow_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ExecutionRecord]:
        """List runs, newest first"""

    @abstractmethod
    async def get_node_logs(self, execution_id: str) -> List[NodeLogRecord]:
        """Node events for a run, oldest first (raises NotFoundError)"""


def _filter_and_page(
    records: List[ExecutionRecord],
    status: Optional[ExecutionStatus],
    workflow_id: Optional[str],
    limit: int,
    offset: int,
) -> List[ExecutionRecord]:
    matched = [
        r for r in records
        if (status is None or r.status == status)
        and (workflow_id is None or r.workflow_id == workflow_id)
    ]
    matched.sort(key=lambda r: r.started_at, reverse=True)
    return matched[offset:offset + limit]


class InMemoryExecutionStore(ExecutionStore):
    """Process-local store. Records are copied in and out."""

    def __init__(self):
        self._runs: Dict[str, ExecutionRecord] = {}
        self._logs: Dict[str, List[NodeLogRecord]] = {}
        self._lock = asyncio.Lock()

    def _require(self, execution_id: str) -> ExecutionRecord:
        record = self._runs.get(execution_id)
        if record is None:
            raise NotFoundError("Execution", execution_id)
        return record

    async def create_run(self, record: ExecutionRecord) -> ExecutionRecord:
        async with self._lock:
            if record.execution_id in self._runs:
                raise ValidationError(f"Execution already exists: {record.execution_id}", field="execution_id")
            self._runs[record.execution_id] = record.model_copy(deep=True)
            self._logs[record.execution_id] = []
        return record

    async def update_run_status(
        self,
        execution_id: str,
        status: ExecutionStatus,
        output_data: Any = None,
        error_message: Optional[str] = None,
        error_node_id: Optional[str] = None,
        node_results: Optional[Dict[str, Any]] = None,
        duration_ms: Optional[int] = None,
        node_runs: Optional[Dict[str, NodeExecutionResult]] = None,
    ) -> ExecutionRecord:
        async with self._lock:
            updated = apply_status(
                self._require(execution_id), ExecutionStatus(status),
                output_data=output_data, error_message=error_message,
                error_node_id=error_node_id, node_results=node_results,
                duration_ms=duration_ms, node_runs=node_runs,
            )
            self._runs[execution_id] = updated
        return updated.model_copy(deep=True)

    async def update_run_progress(
        self,
        execution_id: str,
        current_node_id: str,
        node_results: Dict[str, Any],
        node_runs: Optional[Dict[str, NodeExecutionResult]] = None,
    ) -> None:
        async with self._lock:
            self._runs[execution_id] = apply_progress(self._require(execution_id), current_node_id, dict(node_results), node_runs)

    async def log_node_event(
        self,
        execution_id: str,
        node_id: str,
        node_type: str,
        status: NodeLogStatus,
        payload: Any = None,
        duration_ms: Optional[int] = None,
    ) -> NodeLogRecord:
        log = build_node_log(execution_id, node_id, node_type, status, payload, duration_ms)
        async with self._lock:
            self._require(execution_id)
            self._logs[execution_id].append(log)
        return log

    async def get_run(self, execution_id: str) -> ExecutionRecord:
        async with self._lock:
            return self._require(execution_id).model_copy(deep=True)

    async def list_runs(
        self,
        status: Optional[ExecutionStatus] = None,
        workflow_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ExecutionRecord]:
        async with self._lock:
            records = [r.model_copy(deep=True) for r in self._runs.values()]
        return _filter_and_page(records, status, workflow_id, limit, offset)

    async def get_node_logs(self, execution_id: str) -> List[NodeLogRecord]:
        async with self._lock:
            self._require(execution_id)
            return list(self._logs[execution_id])


class FileExecutionStore(ExecutionStore):
    """
    Disk-backed store (plain JSON, inspectable with `cat` / `jq`).

    Async locks per execution serialize read-modify-write cycles on the
    same run; different runs never contend.
    """

    RECORD_FILE = "execution.json"
    LOG_FILE = "logs.jsonl"

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

        self._locks: Dict[str, asyncio.Lock] = {}
        logger.info(f"FileExecutionStore initialized with directory: {self.base_dir}")

    def _get_lock(self, execution_id: str) -> asyncio.Lock:
        """Get or create lock for a specific execution"""
        if execution_id not in self._locks:
            self._locks[execution_id] = asyncio.Lock()
        return self._locks[execution_id]

    def _execution_dir(self, execution_id: str) -> Path:
        if not _EXECUTION_ID_PATTERN.match(execution_id or ""):
            raise ValidationError(f"Invalid execution ID: {execution_id!r}", field="execution_id")
        return self.base_dir / execution_id

    async def _read_record(self, execution_id: str) -> ExecutionRecord:
        record_file = self._execution_dir(execution_id) / self.RECORD_FILE
        exists = await asyncio.to_thread(record_file.exists)
        if not exists:
            raise NotFoundError("Execution", execution_id)

        async with aiofiles.open(record_file, "r") as f:
            return ExecutionRecord(**json.loads(await f.read()))

    async def _write_record(self, record: ExecutionRecord) -> None:
        execution_dir = self._execution_dir(record.execution_id)
        record_file = execution_dir / self.RECORD_FILE
        tmp_file = execution_dir / f"{self.RECORD_FILE}.tmp"

        async with aiofiles.open(tmp_file, "w") as f:
            await f.write(json.dumps(record.model_dump(), indent=2, default=str))
        await aiofiles.os.replace(tmp_file, record_file)

    async def create_run(self, record: ExecutionRecord) -> ExecutionRecord:
        execution_dir = self._execution_dir(record.execution_id)

        async with self._get_lock(record.execution_id):
            exists = await asyncio.to_thread((execution_dir / self.RECORD_FILE).exists)
            if exists:
                raise ValidationError(f"Execution already exists: {record.execution_id}", field="execution_id")

            await asyncio.to_thread(execution_dir.mkdir, parents=True, exist_ok=True)
            await self._write_record(record)

        logger.debug(f"Created execution: {record.execution_id}")
        return record

    async def update_run_status(
        self,
        execution_id: str,
        status: ExecutionStatus,
        output_data: Any = None,
        error_message: Optional[str] = None,
        error_node_id: Optional[str] = None,
        node_results: Optional[Dict[str, Any]] = None,
        duration_ms: Optional[int] = None,
        node_runs: Optional[Dict[str, NodeExecutionResult]] = None,
    ) -> ExecutionRecord:
        async with self._get_lock(execution_id):
            updated = apply_status(
                await self._read_record(execution_id), ExecutionStatus(status),
                output_data=output_data, error_message=error_message,
                error_node_id=error_node_id, node_results=node_results,
                duration_ms=duration_ms, node_runs=node_runs,
            )
            await self._write_record(updated)
        return updated

    async def update_run_progress(
        self,
        execution_id: str,
        current_node_id: str,
        node_results: Dict[str, Any],
        node_runs: Optional[Dict[str, NodeExecutionResult]] = None,
    ) -> None:
        async with self._get_lock(execution_id):
            record = await self._read_record(execution_id)
            await self._write_record(apply_progress(record, current_node_id, dict(node_results), node_runs))

    async def log_node_event(
        self,
        execution_id: str,
        node_id: str,
        node_type: str,
        status: NodeLogStatus,
        payload: Any = None,
        duration_ms: Optional[int] = None,
    ) -> NodeLogRecord:
        log = build_node_log(execution_id, node_id, node_type, status, payload, duration_ms)
        log_file = self._execution_dir(execution_id) / self.LOG_FILE

        async with self._get_lock(execution_id):
            exists = await asyncio.to_thread(log_file.parent.exists)
            if not exists:
                raise NotFoundError("Execution", execution_id)

            async with aiofiles.open(log_file, "a") as f:
                await f.write(json.dumps(log.model_dump(), default=str) + "\n")

        return log

    async def get_run(self, execution_id: str) -> ExecutionRecord:
        return await self._read_record(execution_id)

    async def list_runs(
        self,
        status: Optional[ExecutionStatus] = None,
        workflow_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ExecutionRecord]:
        record_files = await asyncio.to_thread(lambda: list(self.base_dir.glob(f"*/{self.RECORD_FILE}")))

        records = []
        for record_file in record_files:
            try:
                async with aiofiles.open(record_file, "r") as f:
                    records.append(ExecutionRecord(**json.loads(await f.read())))
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable execution record {record_file}: {e}")

        return _filter_and_page(records, status, workflow_id, limit, offset)

    async def get_node_logs(self, execution_id: str) -> List[NodeLogRecord]:
        execution_dir = self._execution_dir(execution_id)
        exists = await asyncio.to_thread(execution_dir.exists)
        if not exists:
            raise NotFoundError("Execution", execution_id)

        log_file = execution_dir / self.LOG_FILE
        log_exists = await asyncio.to_thread(log_file.exists)
        if not log_exists:
            return []

        async with aiofiles.open(log_file, "r") as f:
            content = await f.read()

        return [NodeLogRecord(**json.loads(line)) for line in content.splitlines() if line.strip()]


def create_execution_store(backend: str, executions_dir: str) -> ExecutionStore:
    """Build the store named in configuration"""
    if backend == "file":
        return FileExecutionStore(Path(executions_dir))
    return InMemoryExecutionStore()
