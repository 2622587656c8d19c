
from .competitor_store import CompetitorStore
from .content_aggregator import aggregate_content
from .intel_extractor import extract_intel
from .research_job import run_competitor_research, start_research
from .site_mapper import map_site

__all__ = [
    "CompetitorStore",
    "aggregate_content",
    "extract_intel",
    "run_competitor_research",
    "start_research",
    "map_site",
]
