"""Finite state machine shared by payouts and moderation reports."""

from typing import Dict, FrozenSet, Iterable, Tuple

from payout_server.errors import InvalidTransition, ValidationError


class StateMachine:
    def __init__(self, name: str, states: Iterable[str], edges: Iterable[Tuple[str, str]]):
        self.name = name
        self.states: FrozenSet[str] = frozenset(states)
        self._edges: Dict[str, FrozenSet[str]] = {}
        for source, target in edges:
            if source not in self.states or target not in self.states:
                raise ValueError(f"{name}: edge {source}->{target} uses unknown state")
            self._edges[source] = self._edges.get(source, frozenset()) | {target}

    def targets(self, current: str) -> FrozenSet[str]:
        return self._edges.get(current, frozenset())

    def is_terminal(self, state: str) -> bool:
        return not self.targets(state)

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.targets(current)

    def validate_state(self, state: str) -> str:
        if state not in self.states:
            raise ValidationError(f"Estado de {self.name} desconocido: {state!r}")
        return state

    def assert_transition(self, current: str, target: str) -> None:
        self.validate_state(target)
        if not self.can_transition(current, target):
            raise InvalidTransition(self.name, current, target)


PAYOUT_PENDING = "pending"
PAYOUT_COMPLETED = "completed"
PAYOUT_FAILED = "failed"
PAYOUT_CANCELLED = "cancelled"

PAYOUT_STATES = StateMachine(
    "pago",
    (PAYOUT_PENDING, PAYOUT_COMPLETED, PAYOUT_FAILED, PAYOUT_CANCELLED),
    (
        (PAYOUT_PENDING, PAYOUT_COMPLETED),
        (PAYOUT_PENDING, PAYOUT_FAILED),
        (PAYOUT_PENDING, PAYOUT_CANCELLED),
    ),
)

# Statuses whose payout keeps its sessions claimed.
CLAIMING_PAYOUT_STATUSES = (PAYOUT_PENDING, PAYOUT_COMPLETED)
RELEASING_PAYOUT_STATUSES = (PAYOUT_FAILED, PAYOUT_CANCELLED)

REPORT_PENDING = "pending"
REPORT_REVIEWING = "reviewing"
REPORT_RESOLVED = "resolved"
REPORT_DISMISSED = "dismissed"

REPORT_STATES = StateMachine(
    "reporte",
    (REPORT_PENDING, REPORT_REVIEWING, REPORT_RESOLVED, REPORT_DISMISSED),
    (
        (REPORT_PENDING, REPORT_REVIEWING),
        (REPORT_PENDING, REPORT_RESOLVED),
        (REPORT_PENDING, REPORT_DISMISSED),
        (REPORT_REVIEWING, REPORT_RESOLVED),
        (REPORT_REVIEWING, REPORT_DISMISSED),
        # moderators may reclassify a closed report
        (REPORT_RESOLVED, REPORT_DISMISSED),
        (REPORT_DISMISSED, REPORT_RESOLVED),
    ),
)
