"""
Scheduling Algorithms

Available schedulers:
- ExtractionScheduler: batched, resumable bill page scraping
"""

from algorithms.extraction_scheduler import (
    ExtractionScheduler,
    ScrapeConfig,
    ScrapeRunState,
)

__all__ = [
    'ExtractionScheduler',
    'ScrapeConfig',
    'ScrapeRunState',
]
