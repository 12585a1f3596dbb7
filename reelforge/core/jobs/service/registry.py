import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from reelforge.core.exceptions import ExportCancelled

logger = logging.getLogger(__name__)


class CancelToken:
    """
    Single-slot cancellation signal.
    Setting it never blocks; workers poll it between units of work.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> bool:
        """Signals cancellation. Returns False if it was already signalled."""
        if self._event.is_set():
            return False
        self._event.set()
        return True

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ExportCancelled("Export cancelled by user")


@dataclass
class ActiveJobHandle:
    """
    In-memory companion of a running export job. Never persisted.
    """
    job_id: str
    cancel_token: CancelToken = field(default_factory=CancelToken)
    is_active: bool = True


class ActiveJobRegistry:
    """
    Process-wide map of running jobs, keyed by job id.
    Volatile by nature: it is empty after a restart and only routes cancellation.
    """

    def __init__(self):
        self._jobs: Dict[str, ActiveJobHandle] = {}
        # resolved output path -> job id that is writing into it
        self._claims: Dict[str, str] = {}
        self._lock = threading.Lock()

    def register(self, job_id: str) -> ActiveJobHandle:
        handle = ActiveJobHandle(job_id=job_id)
        with self._lock:
            if job_id in self._jobs:
                raise ValueError(f"Job {job_id} is already registered")
            self._jobs[job_id] = handle
        return handle

    def get(self, job_id: str) -> Optional[ActiveJobHandle]:
        with self._lock:
            return self._jobs.get(job_id)

    def unregister(self, job_id: str) -> None:
        with self._lock:
            handle = self._jobs.pop(job_id, None)
            self._claims = {path: owner for path, owner in self._claims.items() if owner != job_id}
        if handle:
            handle.is_active = False

    def claim_output(self, job_id: str, path: Path) -> Optional[str]:
        """
        Reserves an output location for a running job.
        Returns None when the claim is granted (or already held by this job),
        otherwise the id of the live job that holds it.
        Claims are released when the job is unregistered.
        """
        key = str(Path(path).resolve())
        with self._lock:
            owner = self._claims.get(key)
            if owner is not None and owner != job_id:
                return owner
            self._claims[key] = job_id
        return None

    def cancel(self, job_id: str) -> bool:
        """
        Signals the job's token if it is running here.
        Returns True if a live job received the signal.
        """
        handle = self.get(job_id)
        if not handle or not handle.is_active:
            return False

        if handle.cancel_token.cancel():
            logger.info(f"Sent cancellation signal to job {job_id}")
        else:
            logger.info(f"Cancellation already pending for job {job_id}")
        return True

    def active_job_ids(self) -> List[str]:
        with self._lock:
            return list(self._jobs)

    def clear(self) -> None:
        """Drops every handle (process shutdown)."""
        with self._lock:
            handles = list(self._jobs.values())
            self._jobs.clear()
            self._claims.clear()
        for handle in handles:
            handle.is_active = False


# Singleton Instance shared by every orchestrator in the process
active_jobs = ActiveJobRegistry()
