"""Campaign structure health checks.

Unlike MissionGraph.build, which refuses a broken campaign outright, this
produces a report for the campaign builder: every problem found, a health
score, and summary counts.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from missionflow.progression.graph import find_cycle
from missionflow.progression.models import MissionDependency, MissionNode

MAX_ENTRY_POINTS = 5
MAX_DEAD_ENDS = 3

# Health score penalty per issue
SEVERITY_PENALTY = {
    "critical": 30,
    "high": 15,
    "medium": 5,
    "low": 2,
}


class IssueKind(Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Severity(Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class ValidationIssue:
    kind: IssueKind
    severity: Severity
    message: str
    mission_id: int | None = None
    mission_name: str | None = None
    suggestion: str | None = None


@dataclass
class CampaignReport:
    """Result of validate_campaign()."""

    issues: list[ValidationIssue] = field(default_factory=list)
    total_missions: int = 0
    entry_points: int = 0
    dead_ends: int = 0
    orphaned: int = 0

    def count(self, severity: Severity) -> int:
        return sum(1 for issue in self.issues if issue.severity is severity)

    @property
    def health_score(self) -> int:
        penalty = sum(SEVERITY_PENALTY[issue.severity.value] for issue in self.issues)
        return max(0, 100 - penalty)

    @property
    def is_valid(self) -> bool:
        return self.count(Severity.CRITICAL) == 0 and self.count(Severity.HIGH) == 0


def validate_campaign(
    missions: Iterable[MissionNode],
    dependencies: Iterable[MissionDependency],
) -> CampaignReport:
    """Inspect a campaign's missions and dependency edges.

    Edges pointing at missions outside the campaign are ignored here; the
    graph builder reports those.
    """
    missions = list(missions)
    by_id = {m.id: m for m in missions}
    edges = [
        d for d in dependencies if d.source_id in by_id and d.target_id in by_id
    ]
    report = CampaignReport(total_missions=len(missions))

    if not missions:
        report.issues.append(
            ValidationIssue(
                kind=IssueKind.WARNING,
                severity=Severity.HIGH,
                message="Campaign has no missions",
                suggestion="Add at least one mission before launching the campaign",
            )
        )

    has_incoming = {d.target_id for d in edges}
    has_outgoing = {d.source_id for d in edges}
    connected = has_incoming | has_outgoing

    # Orphans
    if len(missions) > 1:
        for mission in missions:
            if mission.id not in connected:
                report.orphaned += 1
                report.issues.append(
                    ValidationIssue(
                        kind=IssueKind.WARNING,
                        severity=Severity.MEDIUM,
                        message=f'Mission "{mission.name}" is not connected to other missions',
                        mission_id=mission.id,
                        mission_name=mission.name,
                        suggestion="Add dependencies to build a funnel",
                    )
                )

    # Cycles
    cycle = find_cycle(by_id, edges)
    if cycle:
        names = " -> ".join(by_id[mid].name for mid in [*cycle, cycle[0]])
        report.issues.append(
            ValidationIssue(
                kind=IssueKind.ERROR,
                severity=Severity.CRITICAL,
                message=f"Circular dependency detected: {names}",
                suggestion="Remove one of the dependencies to break the cycle",
            )
        )

    # Rewards
    for mission in missions:
        if mission.experience_reward == 0 and mission.currency_reward == 0:
            report.issues.append(
                ValidationIssue(
                    kind=IssueKind.WARNING,
                    severity=Severity.LOW,
                    message=f'Mission "{mission.name}" gives no rewards',
                    mission_id=mission.id,
                    mission_name=mission.name,
                    suggestion="Add experience or currency to motivate participants",
                )
            )

    # Entry points
    report.entry_points = sum(1 for m in missions if m.id not in has_incoming)
    if missions and report.entry_points == 0:
        report.issues.append(
            ValidationIssue(
                kind=IssueKind.ERROR,
                severity=Severity.HIGH,
                message="No starting mission (every mission has dependencies)",
                suggestion="Create at least one mission without incoming dependencies",
            )
        )
    elif report.entry_points > MAX_ENTRY_POINTS:
        report.issues.append(
            ValidationIssue(
                kind=IssueKind.INFO,
                severity=Severity.LOW,
                message=f"Many starting missions ({report.entry_points})",
                suggestion="Consider merging some paths for a clearer start",
            )
        )

    # Dead ends
    if len(missions) > 1:
        report.dead_ends = sum(1 for m in missions if m.id not in has_outgoing)
    if report.dead_ends > MAX_DEAD_ENDS:
        report.issues.append(
            ValidationIssue(
                kind=IssueKind.INFO,
                severity=Severity.LOW,
                message=f"Many final missions ({report.dead_ends})",
                suggestion="Consider adding a single final mission",
            )
        )

    # Descriptions
    for mission in missions:
        if not mission.description.strip():
            report.issues.append(
                ValidationIssue(
                    kind=IssueKind.WARNING,
                    severity=Severity.LOW,
                    message=f'Mission "{mission.name}" has no description',
                    mission_id=mission.id,
                    mission_name=mission.name,
                    suggestion="Add a description so participants know what to do",
                )
            )

    return report
