from profilelens.services.analysis import ProfileAnalysisService, analysis_service
from profilelens.services.optimization import SectionOptimizationService, optimization_service


def get_analysis_service() -> ProfileAnalysisService:
    return analysis_service


def get_optimization_service() -> SectionOptimizationService:
    return optimization_service
