"""Risk scoring for migration plans."""

from dataclasses import dataclass

from upgrade_migrator.models import (
    ChangeKind,
    ComplexChange,
    MigrationStep,
    RiskLevel,
    Severity,
    StepMode,
)

SEED_POINTS = {
    RiskLevel.HIGH: 3,
    RiskLevel.MEDIUM: 1,
    RiskLevel.LOW: 0,
}


@dataclass
class RiskAssessment:
    """Risk level and numeric score of a change set."""
    
    level: RiskLevel
    score: int
    breaking_changes_count: int
    requires_manual_review: bool


class RiskScorer:
    """Calculates the overall risk of a set of complex changes."""
    
    @staticmethod
    def breaking_count(changes: list[ComplexChange]) -> int:
        """Total number of breaking-change notes."""
        return sum(len(c.breaking_changes) for c in changes)
    
    def estimate_level(self, changes: list[ComplexChange]) -> RiskLevel:
        """Derive the seed risk level.
        
        Args:
            changes: Complex changes of the plan
            
        Returns:
            HIGH for any critical change, more than two breaking notes or
            more than one native change; MEDIUM for any high-severity,
            breaking or native change; otherwise LOW
        """
        breaking = self.breaking_count(changes)
        native = sum(1 for c in changes if c.kind is ChangeKind.NATIVE_CODE)
        
        if any(c.severity is Severity.CRITICAL for c in changes) or breaking > 2 or native > 1:
            return RiskLevel.HIGH
        
        if any(c.severity is Severity.HIGH for c in changes) or breaking > 0 or native > 0:
            return RiskLevel.MEDIUM
        
        return RiskLevel.LOW
    
    def score(self, changes: list[ComplexChange], steps: list[MigrationStep]) -> int:
        """Compute the numeric risk score."""
        level = self.estimate_level(changes)
        manual = sum(1 for s in steps if s.mode is StepMode.MANUAL)
        
        total = len(changes)
        total += 2 * self.breaking_count(changes)
        total += 2 * manual
        
        if any(c.severity is Severity.CRITICAL for c in changes):
            total += 3
        if any(c.kind is ChangeKind.NATIVE_CODE for c in changes):
            total += 2
        
        return total + SEED_POINTS[level]
    
    def assess(self, changes: list[ComplexChange], steps: list[MigrationStep]) -> RiskAssessment:
        """Assess a change set and its planned steps."""
        return RiskAssessment(
            level=self.estimate_level(changes),
            score=self.score(changes, steps),
            breaking_changes_count=self.breaking_count(changes),
            requires_manual_review=any(
                c.severity is Severity.CRITICAL or c.requires_migration for c in changes
            ),
        )
