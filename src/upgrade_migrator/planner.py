"""Migration plan aggregation."""

import logging

from upgrade_migrator.analysis.risk_scorer import RiskScorer
from upgrade_migrator.models import (
    PLAN_GROUP_ORDER,
    ChangeKind,
    ComplexChange,
    MigrationPlan,
    MigrationStep,
    PackageUpdate,
    StepMode,
)

logger = logging.getLogger(__name__)

PACKAGE_STEP_ID = "package_updates"

FIXED_MODES = {
    ChangeKind.BUILD_SYSTEM: StepMode.SEMI_AUTOMATIC,
    ChangeKind.NATIVE_CODE: StepMode.MANUAL,
    ChangeKind.SOURCE_CODE: StepMode.MANUAL,
    ChangeKind.BINARY: StepMode.AUTOMATIC,
    ChangeKind.UNCLASSIFIED: StepMode.MANUAL,
}


def step_mode(change: ComplexChange) -> StepMode:
    """Decide how far a change's step can be automated."""
    if change.kind is ChangeKind.CONFIGURATION:
        return StepMode.SEMI_AUTOMATIC if change.requires_migration else StepMode.AUTOMATIC
    return FIXED_MODES[change.kind]


class MigrationPlanner:
    """Builds an ordered, risk-scored migration plan. Performs no I/O."""
    
    def __init__(self, risk_scorer: RiskScorer | None = None) -> None:
        self.risk_scorer = risk_scorer or RiskScorer()
    
    def build_steps(
        self,
        changes: list[ComplexChange],
        package_updates: list[PackageUpdate],
    ) -> list[MigrationStep]:
        """Order changes into migration steps.
        
        Package updates come first, then one group per change kind in
        PLAN_GROUP_ORDER. Each step depends on every step of the nearest
        preceding non-empty group.
        
        Args:
            changes: Complex changes
            package_updates: Package updates
            
        Returns:
            Steps with strictly increasing order starting at 1
        """
        steps: list[MigrationStep] = []
        previous_group: frozenset[str] = frozenset()
        order = 1
        
        if package_updates:
            names = ", ".join(p.name for p in package_updates)
            steps.append(
                MigrationStep(
                    id=PACKAGE_STEP_ID,
                    description=f"Update package.json dependencies ({names})",
                    mode=StepMode.AUTOMATIC,
                    order=order,
                    file_path="package.json",
                )
            )
            order += 1
            previous_group = frozenset({PACKAGE_STEP_ID})
        
        for kind in PLAN_GROUP_ORDER:
            group = [c for c in changes if c.kind is kind]
            if not group:
                continue
            
            group_ids: list[str] = []
            for change in group:
                step_id = f"step_{change.id}"
                steps.append(
                    MigrationStep(
                        id=step_id,
                        description=change.description,
                        mode=step_mode(change),
                        order=order,
                        file_path=change.file_path,
                        dependencies=previous_group,
                        change_id=change.id,
                    )
                )
                group_ids.append(step_id)
                order += 1
            
            previous_group = frozenset(group_ids)
        
        return steps
    
    def plan(
        self,
        from_version: str,
        to_version: str,
        changes: list[ComplexChange],
        package_updates: list[PackageUpdate],
    ) -> MigrationPlan:
        """Aggregate changes and package updates into a plan.
        
        Args:
            from_version: Current release
            to_version: Target release
            changes: Complex changes from the analyzer
            package_updates: Package updates from the delta extractor
            
        Returns:
            MigrationPlan
        """
        steps = self.build_steps(changes, package_updates)
        assessment = self.risk_scorer.assess(changes, steps)
        
        logger.info(
            f"Planned {len(steps)} step(s) for {from_version} -> {to_version}, "
            f"risk {assessment.level.value} ({assessment.score})"
        )
        
        return MigrationPlan(
            from_version=from_version,
            to_version=to_version,
            package_updates=package_updates,
            complex_changes=changes,
            migration_steps=steps,
            estimated_risk=assessment.level,
            risk_score=assessment.score,
            requires_manual_review=assessment.requires_manual_review,
            breaking_changes_count=assessment.breaking_changes_count,
        )
