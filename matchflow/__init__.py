"""
matchflow: embedding based résumé and job matching.

Given a candidate's résumé text and a corpus of job postings (or a target
job and a corpus of other postings) matchflow produces a ranked list of
matches with a 0–100 relevance score, an explanation and the skills that
were found in the résumé.

The package is split into:

1. **providers** – asynchronous clients for the external embedding and
   chat completion APIs, and the policy that decides what to do when no
   usable API key is configured.
2. **rank** – vector math, the single pair scorer and the orchestrator
   that fans scoring out over a corpus and sorts the results.
3. **schema** – the immutable data model (`JobPosting`, `MatchResult`,
   `RankedPage`).
4. **cli** – command line entry point wiring the above together.

Persistence, authentication and document text extraction are left to the
surrounding application.
"""

from importlib import metadata

from .config import Settings, load_settings  # noqa: F401
from .errors import (  # noqa: F401
    CompletionUnavailable,
    DimensionMismatch,
    EmbeddingUnavailable,
    MatchflowError,
    ProviderNotConfigured,
)
from .rank import MatchOrchestrator, get_default_orchestrator  # noqa: F401
from .schema import JobPosting, MatchResult, PairScore, RankedPage  # noqa: F401

try:
    __version__ = metadata.version("matchflow")
except metadata.PackageNotFoundError:
    __version__ = "0.0.0"
