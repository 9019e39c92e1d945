"""
Compilation Trace Logger.

Records the step-by-step execution of one compilation:
1. Lifecycle Phases (Parsing, Conversion, Class Generation ...).
2. Pass applications (which pass touched which class definition).
3. Degradations (e.g. source text that could not be re-read).

The output is a structured list of event dictionaries suitable for JSON
serialization.
"""

import time
import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class TraceEventType(str, Enum):
  PHASE_START = "phase_start"
  PHASE_END = "phase_end"
  PASS_APPLIED = "pass_applied"
  PASS_SKIPPED = "pass_skipped"
  WARNING = "warning"
  EMISSION = "emission"


@dataclass
class TraceEvent:
  id: str
  type: TraceEventType
  timestamp: float
  description: str
  parent_id: Optional[str] = None
  metadata: Dict[str, Any] = field(default_factory=dict)


class TraceLogger:
  """
  Records compilation events. Each compilation owns one instance.
  """

  def __init__(self) -> None:
    self._events: List[TraceEvent] = []
    self._active_phases: List[str] = []  # Stack of phase IDs

  def start_phase(self, name: str, description: str = "") -> str:
    """Starts a nested phase (e.g., 'CONVERSION'). Returns Phase ID."""
    phase_id = str(uuid.uuid4())
    parent = self._active_phases[-1] if self._active_phases else None

    self._events.append(
      TraceEvent(
        id=phase_id,
        type=TraceEventType.PHASE_START,
        timestamp=time.time(),
        description=name,
        parent_id=parent,
        metadata={"detail": description},
      )
    )
    self._active_phases.append(phase_id)
    return phase_id

  def end_phase(self) -> None:
    """Ends the current active phase."""
    if not self._active_phases:
      return

    phase_id = self._active_phases.pop()
    self._events.append(
      TraceEvent(
        id=str(uuid.uuid4()),
        type=TraceEventType.PHASE_END,
        timestamp=time.time(),
        description="End Phase",
        parent_id=phase_id,
      )
    )

  def log_pass(self, pass_name: str, class_name: str, applied: bool = True) -> None:
    """Logs that a pass was offered a class definition."""
    event_type = TraceEventType.PASS_APPLIED if applied else TraceEventType.PASS_SKIPPED
    self._log_simple(event_type, f"{pass_name} on {class_name}", {"pass": pass_name, "class": class_name})

  def log_emission(self, unit_name: str, path: Optional[str] = None) -> None:
    """Logs the generation of a unit's source."""
    self._log_simple(TraceEventType.EMISSION, f"Emitted {unit_name}", {"unit": unit_name, "path": path})

  def log_warning(self, message: str) -> None:
    self._log_simple(TraceEventType.WARNING, message, {"level": "warning"})

  def _log_simple(self, evt_type: TraceEventType, desc: str, meta: Dict[str, Any]) -> None:
    parent = self._active_phases[-1] if self._active_phases else None
    self._events.append(
      TraceEvent(
        id=str(uuid.uuid4()), type=evt_type, timestamp=time.time(), description=desc, parent_id=parent, metadata=meta
      )
    )

  def export(self) -> List[Dict[str, Any]]:
    """Returns list of dicts for JSON serialization."""
    return [asdict(e) for e in self._events]
