"""
Source documents returned by the search collaborators.

Every collaborator (PubMed, Google Scholar, health websites) maps its own
response shape onto SourceDocument so the rest of the pipeline never needs
to know where a document came from beyond its origin tag.
"""

from dataclasses import dataclass, field
from enum import Enum


class Origin(str, Enum):
    """Kind of collaborator that produced a document."""

    LITERATURE_DB = "literature-db"
    ACADEMIC_SCRAPE = "academic-scrape"
    WEB_SCRAPE = "web-scrape"


@dataclass(frozen=True)
class SourceDocument:
    """
    An abstract or snippet fetched from a search collaborator.

    id is the collaborator's identifier (PMID, Semantic Scholar paper id)
    or the URL when the collaborator has none.
    """
    origin: Origin
    title: str
    abstract_text: str
    url: str
    id: str
    doi: str | None = None
    venue: str | None = None
    year: str | None = None
    # Display label for prompts, e.g. "PubMed" or "Web (CDC)"
    label: str = ""

    @property
    def display_source(self) -> str:
        if self.label:
            return self.label
        return self.origin.value


@dataclass
class SearchResult:
    """Documents returned by one collaborator plus its reported total."""
    documents: list[SourceDocument] = field(default_factory=list)
    total: int = 0

    @classmethod
    def empty(cls) -> "SearchResult":
        return cls(documents=[], total=0)

    def __len__(self) -> int:
        return len(self.documents)
