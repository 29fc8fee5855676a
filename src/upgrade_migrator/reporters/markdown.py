"""Markdown migration guide generator."""

from dataclasses import dataclass, field
from pathlib import Path

from upgrade_migrator.models import (
    ChangeKind,
    MigrationPlan,
    MigrationStep,
    RiskLevel,
    Severity,
    StepMode,
)

BASE_PREREQUISITES = [
    "Node.js 18+ installed",
    "React Native CLI installed",
    "Android Studio (for Android development)",
    "Xcode (for iOS development)",
    "Git repository with clean working directory",
]

BASE_WARNINGS = [
    "Always create a backup of your project before starting migration",
    "Test the migration on a copy of your project first",
    "Some changes may require manual intervention",
]

BASE_ROLLBACK = [
    "Stop any running development servers",
    "Run `upgrade-migrator restore` to put back every backed-up file",
    "Run `npm install` or `yarn install`",
    "Clean build artifacts: `npx react-native clean`",
    "Rebuild the project",
]


@dataclass
class MigrationGuide:
    """Derived guidance for carrying out a plan."""
    
    title: str
    steps: list[MigrationStep]
    prerequisites: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    rollback_instructions: list[str] = field(default_factory=list)
    estimated_minutes: int = 0
    difficulty: str = "beginner"
    
    @property
    def estimated_time(self) -> str:
        """Human-readable duration."""
        if self.estimated_minutes < 60:
            return f"{self.estimated_minutes} minutes"
        hours, minutes = divmod(self.estimated_minutes, 60)
        return f"{hours}h {minutes}m" if minutes else f"{hours}h"


class MigrationGuideReporter:
    """Generates a Markdown migration guide from a plan."""
    
    def build_guide(self, plan: MigrationPlan) -> MigrationGuide:
        """Derive prerequisites, warnings, rollback steps, time and difficulty."""
        kinds = {c.kind for c in plan.complex_changes}
        
        prerequisites = list(BASE_PREREQUISITES)
        if ChangeKind.BUILD_SYSTEM in kinds:
            prerequisites.append("A Gradle version compatible with the target release")
        if ChangeKind.NATIVE_CODE in kinds:
            prerequisites.append("Android NDK installed")
            prerequisites.append("Xcode Command Line Tools installed")
        if ChangeKind.BINARY in kinds:
            prerequisites.append("Sufficient disk space for binary downloads")
        
        warnings = list(BASE_WARNINGS)
        if plan.breaking_changes_count:
            warnings.append(
                f"{plan.breaking_changes_count} breaking changes detected - manual review required"
            )
        if any(c.severity is Severity.CRITICAL for c in plan.complex_changes):
            warnings.append("Critical changes detected - migration may affect app functionality")
        if ChangeKind.NATIVE_CODE in kinds:
            warnings.append("Native code changes detected - may require platform-specific testing")
        if ChangeKind.BINARY in kinds:
            warnings.append("Binary files will be updated - ensure compatibility with your build environment")
        
        rollback = list(BASE_ROLLBACK)
        if ChangeKind.BUILD_SYSTEM in kinds:
            rollback.append("Clean Gradle cache: `./gradlew clean`")
        if ChangeKind.NATIVE_CODE in kinds:
            rollback.append("Clean native build artifacts (`cd ios && pod install` after restoring)")
        
        return MigrationGuide(
            title=f"React Native {plan.from_version} to {plan.to_version} Migration",
            steps=plan.migration_steps,
            prerequisites=prerequisites,
            warnings=warnings,
            rollback_instructions=rollback,
            estimated_minutes=self.estimate_minutes(plan),
            difficulty=self.assess_difficulty(plan),
        )
    
    @staticmethod
    def estimate_minutes(plan: MigrationPlan) -> int:
        """Rough effort estimate in minutes."""
        manual = sum(1 for s in plan.migration_steps if s.mode is StepMode.MANUAL)
        
        minutes = 30
        minutes += 10 * len(plan.complex_changes)
        minutes += 20 * plan.breaking_changes_count
        minutes += 15 * manual
        minutes += {RiskLevel.HIGH: 60, RiskLevel.MEDIUM: 30, RiskLevel.LOW: 0}[plan.estimated_risk]
        
        return minutes
    
    @staticmethod
    def assess_difficulty(plan: MigrationPlan) -> str:
        """Classify the plan as beginner, intermediate, advanced or expert.
        
        The thresholds apply to the plan's numeric risk score.
        """
        score = plan.risk_score
        if score <= 2:
            return "beginner"
        if score <= 5:
            return "intermediate"
        if score <= 8:
            return "advanced"
        return "expert"
    
    def render(self, plan: MigrationPlan) -> str:
        """Render the guide as Markdown."""
        guide = self.build_guide(plan)
        lines: list[str] = []
        
        lines.append(f"# {guide.title}\n")
        lines.append(f"**Estimated risk:** {plan.estimated_risk.value} (score {plan.risk_score})  ")
        lines.append(f"**Difficulty:** {guide.difficulty}  ")
        lines.append(f"**Estimated time:** {guide.estimated_time}  ")
        lines.append(f"**Manual review required:** {'yes' if plan.requires_manual_review else 'no'}\n")
        
        lines.append("## Prerequisites\n")
        lines.extend(f"- {item}" for item in guide.prerequisites)
        lines.append("")
        
        lines.append("## Warnings\n")
        lines.extend(f"- ⚠️ {item}" for item in guide.warnings)
        lines.append("")
        
        if plan.package_updates:
            lines.append("## Package Updates\n")
            lines.append("| Package | Section | Current | Target |")
            lines.append("|---------|---------|---------|--------|")
            for update in plan.package_updates:
                lines.append(
                    f"| `{update.name}` | {update.dependency_class.value} "
                    f"| {update.current_version} | {update.target_version} |"
                )
            lines.append("")
        
        lines.append("## Steps\n")
        changes = {c.id: c for c in plan.complex_changes}
        
        for step in guide.steps:
            lines.append(f"### {step.order}. {step.description}\n")
            lines.append(f"- **Mode:** {step.mode.value}")
            if step.file_path:
                lines.append(f"- **File:** `{step.file_path}`")
            
            change = changes.get(step.change_id or "")
            if change:
                lines.append(f"- **Severity:** {change.severity.value}")
                for note in change.breaking_changes:
                    lines.append(f"- **Breaking:** {note}")
                for note in change.notes:
                    lines.append(f"- {note}")
            lines.append("")
        
        lines.append("## Rollback\n")
        lines.extend(f"{i}. {item}" for i, item in enumerate(guide.rollback_instructions, start=1))
        lines.append("")
        
        return "\n".join(lines)
    
    def generate_report(self, plan: MigrationPlan, output_file: Path) -> None:
        """Write the guide to a file."""
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(self.render(plan))
