"""Audit session state machine.

``reduce`` is the only way the session state changes: it takes the current
``AuditState`` and an event and returns the next state, raising when the event
is not allowed. Status flow::

    idle -> searching -> analyzing -> completed | error
    completed -> searching           (new submission)
    error -> idle                    (explicit retry only)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Optional, Union

from core.errors import AnalysisInProgressError, ExportInProgressError, InvalidTransitionError

if TYPE_CHECKING:
    from audit.models import AnalysisResult


class AuditStatus(str, Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    ERROR = "error"


class ReportTab(str, Enum):
    INFO = "info"
    CONTENT = "content"
    COMPETITORS = "competitors"
    DIAGNOSIS = "diagnosis"
    PROPOSAL = "proposal"


IN_FLIGHT = frozenset({AuditStatus.SEARCHING, AuditStatus.ANALYZING})


@dataclass(frozen=True, slots=True)
class AuditState:
    status: AuditStatus = AuditStatus.IDLE
    handle: Optional[str] = None
    result: Optional["AnalysisResult"] = None
    error_message: Optional[str] = None
    active_tab: ReportTab = ReportTab.INFO
    exporting: bool = False
    export_error: Optional[str] = None

    @property
    def in_flight(self) -> bool:
        return self.status in IN_FLIGHT

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "handle": self.handle,
            "errorMessage": self.error_message,
            "activeTab": self.active_tab.value,
            "exporting": self.exporting,
            "exportError": self.export_error,
            "result": self.result.to_json_dict() if self.result is not None else None,
        }


# Events ---------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Submitted:
    handle: str


@dataclass(frozen=True, slots=True)
class StageChanged:
    status: AuditStatus


@dataclass(frozen=True, slots=True)
class Completed:
    result: "AnalysisResult"


@dataclass(frozen=True, slots=True)
class Failed:
    message: str


@dataclass(frozen=True, slots=True)
class Retry:
    pass


@dataclass(frozen=True, slots=True)
class TabSelected:
    tab: ReportTab


@dataclass(frozen=True, slots=True)
class ExportStarted:
    pass


@dataclass(frozen=True, slots=True)
class ExportFinished:
    pass


@dataclass(frozen=True, slots=True)
class ExportFailed:
    message: str


AuditEvent = Union[
    Submitted,
    StageChanged,
    Completed,
    Failed,
    Retry,
    TabSelected,
    ExportStarted,
    ExportFinished,
    ExportFailed,
]


def _reject(state: AuditState, event: AuditEvent) -> InvalidTransitionError:
    return InvalidTransitionError(
        f"{type(event).__name__} is not allowed while the audit is {state.status.value}."
    )


def reduce(state: AuditState, event: AuditEvent) -> AuditState:
    """Return the state that follows ``event``."""

    if isinstance(event, Submitted):
        if state.in_flight:
            raise AnalysisInProgressError(
                f"An analysis for @{state.handle} is already in progress."
            )
        if state.status is AuditStatus.ERROR:
            raise _reject(state, event)
        if state.exporting:
            raise ExportInProgressError("Cannot start a new analysis while exporting.")
        return AuditState(status=AuditStatus.SEARCHING, handle=event.handle)

    if isinstance(event, StageChanged):
        if not state.in_flight or event.status not in IN_FLIGHT:
            raise _reject(state, event)
        if event.status is state.status:
            return state
        return replace(state, status=event.status)

    if isinstance(event, Completed):
        if not state.in_flight:
            raise _reject(state, event)
        return replace(
            state,
            status=AuditStatus.COMPLETED,
            result=event.result,
            error_message=None,
            active_tab=ReportTab.INFO,
        )

    if isinstance(event, Failed):
        if not state.in_flight:
            raise _reject(state, event)
        return replace(state, status=AuditStatus.ERROR, result=None, error_message=event.message)

    if isinstance(event, Retry):
        if state.status is not AuditStatus.ERROR:
            raise _reject(state, event)
        return AuditState()

    if isinstance(event, TabSelected):
        if state.status is not AuditStatus.COMPLETED:
            raise _reject(state, event)
        return replace(state, active_tab=event.tab)

    if isinstance(event, ExportStarted):
        if state.status is not AuditStatus.COMPLETED or state.result is None:
            raise _reject(state, event)
        if state.exporting:
            raise ExportInProgressError("The report is already being exported.")
        return replace(state, exporting=True, export_error=None)

    if isinstance(event, ExportFinished):
        if not state.exporting:
            raise _reject(state, event)
        return replace(state, exporting=False)

    if isinstance(event, ExportFailed):
        if not state.exporting:
            raise _reject(state, event)
        return replace(state, exporting=False, export_error=event.message)

    raise TypeError(f"Unknown audit event: {event!r}")


__all__ = [
    "AuditEvent",
    "AuditState",
    "AuditStatus",
    "Completed",
    "ExportFailed",
    "ExportFinished",
    "ExportStarted",
    "Failed",
    "IN_FLIGHT",
    "ReportTab",
    "Retry",
    "StageChanged",
    "Submitted",
    "TabSelected",
    "reduce",
]
