"""Classification, change assessment and risk scoring."""

from upgrade_migrator.analysis.change_analyzer import ChangeAnalyzer
from upgrade_migrator.analysis.classifier import FileClassifier, classify_path
from upgrade_migrator.analysis.package_delta import EcosystemFilter, PackageDeltaExtractor
from upgrade_migrator.analysis.risk_scorer import RiskAssessment, RiskScorer

__all__ = [
    "ChangeAnalyzer",
    "FileClassifier",
    "classify_path",
    "EcosystemFilter",
    "PackageDeltaExtractor",
    "RiskAssessment",
    "RiskScorer",
]
