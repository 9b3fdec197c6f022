import asyncio
import logging
import threading
import uuid
from typing import Callable, Dict, List, TypeVar

from audit.analyzer import ProfileAuditor
from audit.handles import normalize_handle
from audit.models import AnalysisResult
from audit.state import (
    AuditEvent,
    AuditState,
    AuditStatus,
    Completed,
    ExportFailed,
    ExportFinished,
    ExportStarted,
    Failed,
    ReportTab,
    Retry,
    StageChanged,
    Submitted,
    TabSelected,
    reduce,
)
from core.errors import AnalysisInProgressError, AuditError, ExportFailedError, InvalidInputError
from utils.helpers import report_filename

logger = logging.getLogger(__name__)

DEFAULT_MAX_SESSIONS = 1000

T = TypeVar("T")
ReportRenderer = Callable[[AnalysisResult, str], T]


class SessionNotFoundError(KeyError):
    """Raised when a session id is unknown"""


class AuditSessionService:
    """Simple in-memory session store - one audit state per browser session"""

    def __init__(self, max_sessions: int = DEFAULT_MAX_SESSIONS):
        self.sessions: Dict[str, AuditState] = {}
        self.max_sessions = max_sessions
        self._lock = threading.Lock()

    def create_session(self) -> str:
        """Create new audit session and return session ID

        When the store is full the oldest sessions are dropped first;
        sessions with an analysis in flight are never evicted.
        """
        session_id = str(uuid.uuid4())
        with self._lock:
            evicted = self._evict_locked()
            self.sessions[session_id] = AuditState()
        if evicted:
            logger.info(
                "Evicted audit sessions",
                extra={"operation": "session_evict", "count": len(evicted), "max_sessions": self.max_sessions},
            )
        logger.info("Created audit session", extra={"operation": "session_create", "session_id": session_id})
        return session_id

    def _evict_locked(self) -> List[str]:
        evicted: List[str] = []
        # dicts keep insertion order, so the first ids are the oldest sessions
        for session_id in list(self.sessions):
            if len(self.sessions) < self.max_sessions:
                break
            if self.sessions[session_id].in_flight:
                continue
            del self.sessions[session_id]
            evicted.append(session_id)
        return evicted

    def delete_session(self, session_id: str) -> None:
        """Forget a session; rejected while its analysis is in flight"""
        with self._lock:
            try:
                state = self.sessions[session_id]
            except KeyError:
                raise SessionNotFoundError(session_id) from None
            if state.in_flight:
                raise AnalysisInProgressError(f"Session {session_id} has an analysis in flight.")
            del self.sessions[session_id]
        logger.info("Deleted audit session", extra={"operation": "session_delete", "session_id": session_id})

    def get_state(self, session_id: str) -> AuditState:
        with self._lock:
            try:
                return self.sessions[session_id]
            except KeyError:
                raise SessionNotFoundError(session_id) from None

    def dispatch(self, session_id: str, event: AuditEvent) -> AuditState:
        """Apply one event atomically and store the new state"""
        with self._lock:
            try:
                current = self.sessions[session_id]
            except KeyError:
                raise SessionNotFoundError(session_id) from None
            new_state = reduce(current, event)
            self.sessions[session_id] = new_state
        if new_state.status is not current.status:
            logger.info(
                "Audit session status changed",
                extra={
                    "operation": "session_transition",
                    "session_id": session_id,
                    "event": type(event).__name__,
                    "from_status": current.status.value,
                    "to_status": new_state.status.value,
                },
            )
        return new_state

    async def run_analysis_async(
        self, session_id: str, user_input: str, auditor: ProfileAuditor
    ) -> AnalysisResult:
        """Run one analysis for the session; a second submission while in flight is rejected"""
        handle = normalize_handle(user_input or "")
        if not handle:
            raise InvalidInputError("An Instagram handle or profile URL is required.")

        self.dispatch(session_id, Submitted(handle=handle))

        def on_stage(status: AuditStatus) -> None:
            self.dispatch(session_id, StageChanged(status=status))

        try:
            result = await auditor.analyze(user_input, on_stage=on_stage)
        except AuditError as exc:
            self.dispatch(session_id, Failed(message=exc.user_message))
            raise
        except Exception:
            self.dispatch(session_id, Failed(message=AuditError.user_message))
            raise

        self.dispatch(session_id, Completed(result=result))
        return result

    def run_analysis(self, session_id: str, user_input: str, auditor: ProfileAuditor) -> AnalysisResult:
        return asyncio.run(self.run_analysis_async(session_id, user_input, auditor))

    def retry(self, session_id: str) -> AuditState:
        return self.dispatch(session_id, Retry())

    def select_tab(self, session_id: str, tab: str) -> AuditState:
        return self.dispatch(session_id, TabSelected(tab=ReportTab(tab)))

    def export_report(self, session_id: str, render: ReportRenderer) -> T:
        """Hand the completed result to an external renderer; no retries.

        A renderer failure is recorded on the session and raised as
        ExportFailedError, the analysis result itself is kept.
        """
        state = self.dispatch(session_id, ExportStarted())
        result = state.result
        filename = report_filename(result.basic_info.business_name)

        try:
            rendered = render(result, filename)
        except Exception as exc:  # noqa: BLE001 - renderer is an external collaborator
            logger.exception(
                "Report export failed",
                extra={"operation": "report_export", "session_id": session_id, "report_filename": filename},
            )
            self.dispatch(session_id, ExportFailed(message=ExportFailedError.user_message))
            raise ExportFailedError(f"Report renderer failed: {exc}") from exc

        self.dispatch(session_id, ExportFinished())
        logger.info(
            "Report exported",
            extra={"operation": "report_export", "session_id": session_id, "report_filename": filename},
        )
        return rendered
