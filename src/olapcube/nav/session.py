"""
Session management for interactive cube exploration.

A session Σ = <s_0, ..., s_T> where each state s_t = <C_t, a_t> holds the
cube and the operation that produced it. s_0 is the cube built from the
loaded records; back-navigation pops states.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence
import json
import logging
import uuid

from olapcube.cube.actions import OLAPOperation, OperationResult, OperationType, operation_from_dict
from olapcube.cube.builder import create_cube
from olapcube.cube.inference import InferenceConfig
from olapcube.cube.schema import Cube
from olapcube.cube.view import AxisAssignment

logger = logging.getLogger(__name__)


@dataclass
class SessionState:
    """
    A single state in an exploration session.

    Attributes:
        cube: Cube current at this step
        operation: Operation that produced the cube (None for the initial state)
        axis_assignment: View binding at this step
        timestamp: When this state was created
    """
    cube: Cube
    operation: Optional[OLAPOperation] = None
    axis_assignment: AxisAssignment = field(default_factory=AxisAssignment)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize state for logging."""
        return {
            "operation": self.operation.to_dict() if self.operation else None,
            "description": self.operation.describe() if self.operation else "initial cube",
            "axis_assignment": self.axis_assignment.to_dict(),
            "total_records": self.cube.total_records,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class ExplorationSession:
    """
    An interactive OLAP exploration session.

    Tracks the stack of applied operations, enabling:
    - Back-navigation to earlier cubes
    - Audit display of the operation history
    - Replay of a saved history against freshly loaded records
    """
    session_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    states: List[SessionState] = field(default_factory=list)
    start_time: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def start(cls, records: Sequence[Mapping[str, Any]],
              config: Optional[InferenceConfig] = None, **kwargs) -> "ExplorationSession":
        """Build the initial cube from records and open a session on it."""
        cube = create_cube(records, config)
        session = cls(**kwargs)
        session.states.append(
            SessionState(cube=cube, axis_assignment=AxisAssignment.default_for(cube))
        )
        return session

    @property
    def current_state(self) -> Optional[SessionState]:
        """Get current (latest) state."""
        return self.states[-1] if self.states else None

    @property
    def current_cube(self) -> Optional[Cube]:
        return self.current_state.cube if self.current_state else None

    @property
    def axis_assignment(self) -> AxisAssignment:
        return self.current_state.axis_assignment if self.current_state else AxisAssignment()

    @property
    def step_count(self) -> int:
        """Number of operations applied since the initial cube."""
        return max(len(self.states) - 1, 0)

    @property
    def history(self) -> List[OLAPOperation]:
        """Applied operations, oldest first."""
        return [s.operation for s in self.states if s.operation is not None]

    def apply(self, operation: OLAPOperation) -> OperationResult:
        """
        Apply an operation to the current cube.

        Applied operations push a new state; rejected ones leave the
        session on its last good state.
        """
        if self.current_cube is None:
            raise RuntimeError("Session has no cube; use ExplorationSession.start")

        result = operation.apply(self.current_cube)
        if not result.applied:
            return result

        axis_assignment = self.axis_assignment
        if operation.operation_type == OperationType.PIVOT:
            axis_assignment = operation.axis_assignment
        self.states.append(
            SessionState(cube=result.cube, operation=operation,
                         axis_assignment=axis_assignment)
        )
        logger.debug(f"Session {self.session_id} step {self.step_count}: {operation.describe()}")
        return result

    def set_axis_assignment(self, assignment: AxisAssignment) -> None:
        """Rebind the view axes without changing the cube."""
        if self.current_state:
            self.current_state.axis_assignment = assignment

    def back(self) -> Optional[Cube]:
        """Discard the latest state and return the cube before it."""
        if len(self.states) > 1:
            self.states.pop()
        return self.current_cube

    def reset(self) -> Optional[Cube]:
        """Return to the initial cube."""
        del self.states[1:]
        return self.current_cube

    def to_dict(self) -> Dict[str, Any]:
        """Serialize session for logging/storage."""
        return {
            "session_id": self.session_id,
            "start_time": self.start_time.isoformat(),
            "step_count": self.step_count,
            "metadata": self.metadata,
            "states": [s.to_dict() for s in self.states]
        }

    def save(self, filepath: str):
        """Save session history to a JSON file."""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2, default=str)

    @classmethod
    def load(cls, filepath: str, records: Sequence[Mapping[str, Any]],
             config: Optional[InferenceConfig] = None) -> "ExplorationSession":
        """Load a saved session by replaying its operations on the records."""
        with open(filepath, 'r') as f:
            data = json.load(f)

        session = cls.start(
            records, config,
            session_id=data["session_id"],
            start_time=datetime.fromisoformat(data["start_time"]),
            metadata=data.get("metadata", {})
        )

        for state_data in data["states"]:
            if state_data.get("operation") is None:
                continue
            operation = operation_from_dict(state_data["operation"])
            result = session.apply(operation)
            if not result.applied:
                logger.warning(f"Replay of {operation.describe()} was rejected: {result.detail}")
        return session
