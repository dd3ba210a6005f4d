"""
Reproduction services: rebuild a published version from its source.
"""

from .builder import BuildOutput, ConstrainedBuilder
from .ref_resolver import GitRefResolver
from .service import ReproductionAttempt, ReproductionService, pipeline_stage
from .source_fetcher import FetchedSource, SourceFetcher
from .toolchain import Toolchain, ToolchainMatcher

__all__ = [
    "BuildOutput",
    "ConstrainedBuilder",
    "FetchedSource",
    "GitRefResolver",
    "ReproductionAttempt",
    "ReproductionService",
    "SourceFetcher",
    "Toolchain",
    "ToolchainMatcher",
    "pipeline_stage",
]
