# Schemas package
from .intel_schema import CompetitorIntel
from .research_schema import (
    CompetitorResearchRecord,
    ResearchAcceptedResponse,
    ResearchJobRequest,
)

__all__ = [
    "CompetitorIntel",
    "CompetitorResearchRecord",
    "ResearchAcceptedResponse",
    "ResearchJobRequest",
]
