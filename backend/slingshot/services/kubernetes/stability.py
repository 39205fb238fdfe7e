"""
Health classification of deploy groups across consecutive polls.

Rules per group, checked in order on every poll:

- any pod restarted since it was last seen (unseen pods start at 0):
  Restarted, and the group stays Restarted for the rest of the execution
- fewer pods than the replica target (including none): Missing
- any pod not Running or not Ready: Waiting
- otherwise the group is healthy; after ``threshold`` consecutive healthy
  polls it is Live, before that it is Stabilizing

Missing, Waiting and Restarted reset the healthy-poll counter.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Sequence

from slingshot.services.kubernetes.status_poller import PodStatusSnapshot


class VerdictKind(str, Enum):
    LIVE = "live"
    STABILIZING = "stabilizing"
    WAITING = "waiting"
    RESTARTED = "restarted"
    MISSING = "missing"


@dataclass(frozen=True)
class Verdict:
    kind: VerdictKind
    phase: Optional[str] = None
    ready: bool = False
    stable_polls: int = 0
    threshold: int = 1

    @property
    def text(self) -> str:
        """Progress text shown after the group name."""
        if self.kind == VerdictKind.LIVE:
            return "Live"
        if self.kind == VerdictKind.RESTARTED:
            return "Restarted"
        if self.kind == VerdictKind.MISSING:
            return "Missing"
        if self.kind == VerdictKind.STABILIZING:
            return f"Stabilizing ({self.stable_polls}/{self.threshold})"
        return f"Waiting ({self.phase}, {'Ready' if self.ready else 'not Ready'})"

    @property
    def live(self) -> bool:
        return self.kind == VerdictKind.LIVE

    @property
    def restarted(self) -> bool:
        return self.kind == VerdictKind.RESTARTED


@dataclass
class StabilityState:
    """What one group has shown so far during an execution."""

    consecutive_good: int = 0
    restart_counts: Dict[str, int] = field(default_factory=dict)
    unstable: bool = False
    missing_polls: int = 0


class StabilityClassifier:
    """Keeps a StabilityState per group and turns polls into verdicts."""

    def __init__(self, threshold: int = 1):
        if threshold < 1:
            raise ValueError(f"threshold must be >= 1, got {threshold}")
        self.threshold = threshold
        self.states: Dict[str, StabilityState] = {}

    def state_for(self, group: str) -> StabilityState:
        return self.states.setdefault(group, StabilityState())

    def classify(
        self,
        group: str,
        pods: Sequence[PodStatusSnapshot],
        replica_target: int = 1,
    ) -> Verdict:
        """
        Classify one poll of ``group``.

        Args:
            group: Deploy group name
            pods: Pods found for the group in this poll
            replica_target: Number of pods the group should have
        """
        state = self.state_for(group)

        restarted = False
        for pod in pods:
            if pod.restart_count > state.restart_counts.get(pod.name, 0):
                restarted = True
            state.restart_counts[pod.name] = max(pod.restart_count, state.restart_counts.get(pod.name, 0))
        if restarted:
            state.unstable = True

        if state.unstable:
            state.consecutive_good = 0
            state.missing_polls = 0
            return Verdict(VerdictKind.RESTARTED)

        if len(pods) < max(replica_target, 1):
            state.consecutive_good = 0
            state.missing_polls += 1
            return Verdict(VerdictKind.MISSING)
        state.missing_polls = 0

        for pod in pods:
            if pod.phase != "Running" or not pod.ready:
                state.consecutive_good = 0
                return Verdict(VerdictKind.WAITING, phase=pod.phase, ready=pod.ready)

        state.consecutive_good += 1
        if state.consecutive_good >= self.threshold:
            return Verdict(VerdictKind.LIVE, stable_polls=state.consecutive_good, threshold=self.threshold)
        return Verdict(VerdictKind.STABILIZING, stable_polls=state.consecutive_good, threshold=self.threshold)

    def missing_exceeded(self, limit: Optional[int]) -> bool:
        """True when some group has been Missing for more than ``limit`` polls."""
        if limit is None:
            return False
        return any(state.missing_polls > limit for state in self.states.values())
