from __future__ import annotations

import logging
import threading
import time
import uuid
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from grossprofit.cache import CalculationCache
from grossprofit.orchestrator import calculate_all_stores
from grossprofit.storage import request_from_dict, results_to_dict

logger = logging.getLogger("grossprofit.worker")

FINISHED = {"succeeded", "failed"}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def handle_request(
    message: Any,
    max_workers: Optional[int] = None,
    cache: Optional[CalculationCache] = None,
) -> Dict[str, Any]:
    """Run one ``calculate`` request and answer with exactly one response.

    ``{"type": "result", "results": {storeId: result}}`` on success,
    ``{"type": "error", "message": str}`` on any failure.
    """

    try:
        kind = message.get("type") if isinstance(message, dict) else None
        if kind != "calculate":
            raise ValueError(f"unknown message type: {kind!r}")
        data, settings, days_in_month = request_from_dict(message)
        results = calculate_all_stores(data, settings, days_in_month, max_workers=max_workers, cache=cache)
        return {"type": "result", "results": results_to_dict(results)}
    except Exception as e:
        logger.exception("calculation request failed")
        return {"type": "error", "message": str(e)}


class CalculationJobs:
    """Background calculations, one daemon thread per submitted request.

    A job goes pending -> running -> succeeded | failed and always resolves
    exactly once. There is no cancellation.
    """

    def __init__(
        self,
        max_workers: Optional[int] = None,
        history: int = 200,
        cache: Optional[CalculationCache] = None,
    ) -> None:
        self.max_workers = max_workers
        self.history = max(1, int(history))
        self.cache = cache
        self._jobs: "OrderedDict[str, dict]" = OrderedDict()
        self._lock = threading.Lock()

    def submit(self, message: Dict[str, Any]) -> str:
        job_id = f"calc_{uuid.uuid4().hex[:12]}"
        with self._lock:
            self._jobs[job_id] = {
                "job_id": job_id,
                "status": "pending",
                "message": "queued",
                "error": "",
                "response": None,
                "created_at": _now_iso(),
                "started_at": "",
                "finished_at": "",
            }
            self._prune()
        t = threading.Thread(target=self._run, args=(job_id, message), daemon=True)
        t.start()
        logger.info("job %s submitted", job_id)
        return job_id

    def _prune(self) -> None:
        # Caller holds the lock. Only finished jobs are dropped.
        finished = [jid for jid, j in self._jobs.items() if j["status"] in FINISHED]
        excess = len(self._jobs) - self.history
        for jid in finished[: max(0, excess)]:
            del self._jobs[jid]

    def _run(self, job_id: str, message: Dict[str, Any]) -> None:
        with self._lock:
            j = self._jobs.get(job_id)
            if not j:
                return
            j["status"] = "running"
            j["started_at"] = _now_iso()
            j["message"] = "calculating"

        response = handle_request(message, max_workers=self.max_workers, cache=self.cache)

        with self._lock:
            j = self._jobs.get(job_id)
            if not j:
                return
            if response.get("type") == "result":
                j["status"] = "succeeded"
                j["message"] = f"calculated {len(response.get('results') or {})} stores"
            else:
                j["status"] = "failed"
                j["error"] = str(response.get("message") or "")
                j["message"] = "calculation failed"
            j["response"] = response
            j["finished_at"] = _now_iso()
            status = j["status"]
        logger.info("job %s %s", job_id, status)

    def snapshot(self, job_id: str, include_response: bool = True) -> Optional[dict]:
        with self._lock:
            j = self._jobs.get(job_id)
            if j is None:
                return None
            snap = {
                "job_id": str(j.get("job_id") or ""),
                "status": str(j.get("status") or "unknown"),
                "message": str(j.get("message") or ""),
                "error": str(j.get("error") or ""),
                "created_at": str(j.get("created_at") or ""),
                "started_at": str(j.get("started_at") or ""),
                "finished_at": str(j.get("finished_at") or ""),
            }
            if include_response and j.get("response") is not None:
                snap["response"] = j["response"]
            return snap

    def wait(self, job_id: str, timeout: float = 10.0, poll: float = 0.01) -> Optional[dict]:
        """Poll until the job finishes or ``timeout`` elapses; returns the last snapshot."""

        deadline = time.monotonic() + float(timeout)
        snap = self.snapshot(job_id)
        while snap is not None and snap["status"] not in FINISHED:
            if time.monotonic() >= deadline:
                break
            time.sleep(poll)
            snap = self.snapshot(job_id)
        return snap
