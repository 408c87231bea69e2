"""Domain models for the meal quality gate."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class StageResult:
    """Outcome of one quality-control stage."""

    stage: int
    name: str
    passed: bool
    confidence: float
    issues: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class QualityAssessment:
    """Combined outcome of all quality-control stages."""

    overall_pass: bool
    average_confidence: float
    stages: list[StageResult]

    @property
    def failed_stages(self) -> list[StageResult]:
        """Return the stages that did not pass."""
        return [stage for stage in self.stages if not stage.passed]
