"""
Data model shared by the ranking components.

Everything here is created fresh for a single ranking request and is
immutable once built.  ``JobPosting`` mirrors the job entity owned by the
surrounding application; matchflow only reads it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

EmbeddingVector = List[float]


def _join_fields(*values: Optional[str]) -> str:
    return " ".join(v.strip() for v in values if v and v.strip())


def split_skills(skills: Optional[str]) -> List[str]:
    """Split a comma separated skills field into trimmed, non-empty names."""
    if not skills:
        return []
    return [s.strip() for s in skills.split(",") if s.strip()]


@dataclass(frozen=True)
class TextDocument:
    id: Optional[str]
    raw_text: str


@dataclass(frozen=True)
class JobPosting:
    id: Any
    title: str
    description: Optional[str] = None
    requirements: Optional[str] = None
    skills: Optional[str] = None         # comma separated
    created_at: Optional[datetime] = None
    company: Optional[str] = None

    def combined_text(self) -> str:
        """Text used when matching a résumé: title, description, requirements, skills."""
        return _join_fields(self.title, self.description, self.requirements, self.skills)

    def similarity_text(self) -> str:
        """Text used for job-to-job similarity.  The title is deliberately left out."""
        return _join_fields(self.description, self.requirements, self.skills)

    def as_document(self) -> TextDocument:
        return TextDocument(id=None if self.id is None else str(self.id), raw_text=self.combined_text())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobPosting":
        created = data.get("created_at", data.get("createdAt"))
        if isinstance(created, str) and created:
            created = datetime.fromisoformat(created)
        return cls(
            id=data.get("id"),
            title=data.get("title") or "",
            description=data.get("description"),
            requirements=data.get("requirements"),
            skills=data.get("skills"),
            created_at=created or None,
            company=data.get("company"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "company": self.company,
            "description": self.description,
            "requirements": self.requirements,
            "skills": self.skills,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class PairScore:
    """Score for one (source, target) pair without a corpus item attached."""

    score: float
    matching_skills: Tuple[str, ...] = ()
    explanation: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "matchingSkills": list(self.matching_skills),
            "explanation": self.explanation,
        }


@dataclass(frozen=True)
class MatchResult:
    item: JobPosting
    score: float
    matching_skills: Tuple[str, ...] = ()
    explanation: str = ""

    @classmethod
    def from_pair(cls, item: JobPosting, pair: PairScore) -> "MatchResult":
        return cls(item=item, score=pair.score, matching_skills=pair.matching_skills, explanation=pair.explanation)

    @classmethod
    def zero(cls, item: JobPosting, explanation: str) -> "MatchResult":
        return cls(item=item, score=0.0, matching_skills=(), explanation=explanation)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jobId": self.item.id,
            "score": self.score,
            "matchingSkills": list(self.matching_skills),
            "explanation": self.explanation,
        }


@dataclass(frozen=True)
class RankedPage:
    items: Tuple[MatchResult, ...]
    page_number: int
    page_size: int
    total_count: int

    def __len__(self) -> int:
        return len(self.items)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [m.to_dict() for m in self.items],
            "page": self.page_number,
            "size": self.page_size,
            "totalCount": self.total_count,
        }
