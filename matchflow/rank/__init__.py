"""
Ranking subsystem for matchflow.

The `rank` package turns provider output into ordered results:

* `vector_math` – cosine similarity between embeddings and the 0–100
  ATS score derived from it.
* `scorer` – scores one résumé/job pair: similarity, matched skills
  and an explanation, absorbing provider failures.
* `orchestrator` – fans the scorer out over a corpus, waits for every
  item and sorts the results.
"""

from .vector_math import cosine_similarity, to_score  # noqa: F401
from .scorer import MatchScorer, extract_skill_matches  # noqa: F401
from .orchestrator import MatchOrchestrator, get_default_orchestrator  # noqa: F401
