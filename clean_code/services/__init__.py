"""Service layer that hosts talk to."""

from clean_code.services.analysis_service import AnalysisService

__all__ = ["AnalysisService"]
