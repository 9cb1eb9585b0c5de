"""Workflow runtimes: an external scheduler over HTTP, or an in-process runner."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from uuid import uuid4

import httpx

from gainchef.domain.workflow import WorkflowPayload
from gainchef.services.workflow import (
    MONTHLY_COOL_DOWN,
    WorkflowClient,
    WorkflowResult,
    run_workflow_steps,
)

_logger = logging.getLogger(__name__)

MAX_KEPT_RESULTS = 100


@dataclass
class HttpxWorkflowClient(WorkflowClient):
    """Posts workflow payloads to an external scheduler."""

    url: str
    http_client: httpx.AsyncClient
    token: str | None = None

    @classmethod
    def create_client(cls, url: str, token: str | None = None) -> "HttpxWorkflowClient":
        """Create a scheduler client with a managed httpx session."""
        return cls(url=url, http_client=httpx.AsyncClient(), token=token)

    async def create(self, payload: WorkflowPayload) -> str:
        """Submit the payload and return the scheduler's instance id."""
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        response = await self.http_client.post(
            self.url,
            json={"params": payload.model_dump(mode="json")},
            headers=headers,
            timeout=15,
        )
        response.raise_for_status()
        body = response.json()
        workflow_id = body.get("id") or body.get("workflow_id")
        if not workflow_id:
            raise RuntimeError("Workflow scheduler returned no instance id")
        return str(workflow_id)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


@dataclass
class InProcessWorkflowRunner(WorkflowClient):
    """Runs workflow steps as background tasks on the current event loop.

    Only the newest ``max_results`` finished runs are kept.
    """

    cool_down: timedelta = MONTHLY_COOL_DOWN
    max_results: int = MAX_KEPT_RESULTS
    results: dict[str, WorkflowResult] = field(default_factory=dict)
    _tasks: dict[str, asyncio.Task[WorkflowResult]] = field(
        default_factory=dict, repr=False
    )

    async def create(self, payload: WorkflowPayload) -> str:
        """Schedule a run and return its id immediately."""
        workflow_id = str(uuid4())
        self._tasks[workflow_id] = asyncio.create_task(self._run(workflow_id, payload))
        return workflow_id

    async def wait(self, workflow_id: str) -> WorkflowResult:
        """Wait for a scheduled run to finish."""
        if workflow_id in self.results:
            return self.results[workflow_id]
        return await self._tasks[workflow_id]

    async def _run(self, workflow_id: str, payload: WorkflowPayload) -> WorkflowResult:
        try:
            events = await run_workflow_steps(payload, cool_down=self.cool_down)
        except Exception:
            _logger.exception("Workflow %s failed", workflow_id)
            raise
        finally:
            self._tasks.pop(workflow_id, None)
        result = WorkflowResult(workflow_id=workflow_id, payload=payload, events=events)
        self.results[workflow_id] = result
        while len(self.results) > self.max_results:
            del self.results[next(iter(self.results))]
        return result
