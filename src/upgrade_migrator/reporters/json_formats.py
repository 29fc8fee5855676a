"""JSON output formatters."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from upgrade_migrator import __version__
from upgrade_migrator.models import ApplyResult, ComplexChange, MigrationPlan

logger = logging.getLogger(__name__)


class JSONReporter:
    """Generates JSON format reports."""
    
    def plan_report(self, plan: MigrationPlan, output_file: Path | None = None) -> str:
        """Generate JSON for a migration plan.
        
        Args:
            plan: Migration plan
            output_file: Optional path to save report
            
        Returns:
            JSON string
        """
        data = {
            "version": "1.0",
            "tool_version": __version__,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "from_version": plan.from_version,
            "to_version": plan.to_version,
            "summary": {
                "estimated_risk": plan.estimated_risk.value,
                "risk_score": plan.risk_score,
                "requires_manual_review": plan.requires_manual_review,
                "requires_confirmation": plan.requires_confirmation,
                "breaking_changes_count": plan.breaking_changes_count,
                "package_updates": len(plan.package_updates),
                "complex_changes": len(plan.complex_changes),
            },
            "package_updates": [
                {
                    "name": p.name,
                    "current_version": p.current_version,
                    "target_version": p.target_version,
                    "dependency_class": p.dependency_class.value,
                    "selected": p.selected,
                }
                for p in plan.package_updates
            ],
            "complex_changes": [self._serialize_change(c) for c in plan.complex_changes],
            "migration_steps": [
                {
                    "id": s.id,
                    "order": s.order,
                    "description": s.description,
                    "mode": s.mode.value,
                    "file_path": s.file_path,
                    "dependencies": sorted(s.dependencies),
                }
                for s in plan.migration_steps
            ],
        }
        
        return self._dump(data, output_file)
    
    def apply_report(self, result: ApplyResult, output_file: Path | None = None) -> str:
        """Generate JSON for an apply run."""
        data = {
            "version": "1.0",
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "success": result.success,
            "applied_changes": [
                {
                    "type": a.kind,
                    "file_path": a.file_path,
                    "success": a.success,
                    "error": a.error,
                    "message": a.message,
                }
                for a in result.applied_changes
            ],
            "errors": result.errors,
            "warnings": result.warnings,
        }
        
        return self._dump(data, output_file)
    
    @staticmethod
    def _serialize_change(change: ComplexChange) -> dict[str, Any]:
        return {
            "id": change.id,
            "type": change.kind.value,
            "file_path": change.file_path,
            "status": change.status.value,
            "description": change.description,
            "severity": change.severity.value,
            "requires_migration": change.requires_migration,
            "breaking_changes": change.breaking_changes,
            "notes": change.notes,
        }
    
    @staticmethod
    def _dump(data: dict[str, Any], output_file: Path | None) -> str:
        json_str = json.dumps(data, indent=2, default=str)
        
        if output_file:
            output_file.write_text(json_str, encoding="utf-8")
            logger.debug(f"Wrote JSON report to {output_file}")
        
        return json_str
