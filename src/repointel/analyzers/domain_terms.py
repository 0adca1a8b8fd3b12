"""Domain term ranking.

Scores vocabulary tokens by where they appear. Every occurrence adds the
weight of its source (folder, route, entity, relation, type), and the sources
a term was seen in are kept as evidence.
"""

import re
from dataclasses import dataclass, field

from repointel.config import DomainRankerConfig
from repointel.models.facts import DbModelSummary, DomainTerm, DomainTerms, RouteDescriptor
from repointel.utils.fs import RepoSurvey
from repointel.utils.text import tokenize, unique_sorted

TYPE_DECLARATION = re.compile(r"\b(?:interface|class|type|enum)\s+([A-Z]\w*)")


@dataclass
class _TermScore:
    score: int = 0
    sources: set[str] = field(default_factory=set)


def collect_type_names(survey: RepoSurvey) -> list[str]:
    """Declared interface, class, type alias and enum names, unique sorted."""
    return unique_sorted(
        match.group(1)
        for _, code in survey.iter_sources()
        for match in TYPE_DECLARATION.finditer(code)
    )


class DomainTermRanker:
    """Accumulates weighted token occurrences and ranks them.

    Example:
        >>> ranker = DomainTermRanker(DomainRankerConfig())
        >>> ranker.add("orders", "route", 3)
        >>> ranker.add("Order", "type", 1)
        >>> [t.term for t in ranker.ranked()]
        ['orders', 'order']
    """

    def __init__(self, config: DomainRankerConfig) -> None:
        self.config = config
        self._terms: dict[str, _TermScore] = {}

    def add(self, raw_value: str, source: str, weight: int) -> None:
        """Tokenize a value and credit every token with ``weight``."""
        for token in tokenize(raw_value, self.config.stop_words, self.config.min_token_length):
            entry = self._terms.setdefault(token, _TermScore())
            entry.score += weight
            entry.sources.add(source)

    def ranked(self) -> list[DomainTerm]:
        """Terms by score descending then term, capped at ``max_terms``."""
        ordered = sorted(self._terms.items(), key=lambda item: (-item[1].score, item[0]))
        return [
            DomainTerm(term=term, score=entry.score, sources=sorted(entry.sources))
            for term, entry in ordered[: self.config.max_terms]
        ]


def rank_domain_terms(
    survey: RepoSurvey,
    routes: list[RouteDescriptor],
    db_models: DbModelSummary,
    config: DomainRankerConfig,
) -> DomainTerms:
    """Rank the vocabulary of a repository.

    Args:
        survey: Repository listing (top-level folders and source text)
        routes: Detected HTTP routes
        db_models: Detected entities and relationships
        config: Weights, stop words and cap

    Returns:
        DomainTerms with at most ``config.max_terms`` entries
    """
    ranker = DomainTermRanker(config)

    for folder in survey.top_level_folders:
        ranker.add(folder, "folder", config.folder_weight)

    for route in routes:
        for segment in route.path.split("/"):
            if segment:
                ranker.add(segment, "route", config.route_weight)

    for entity in db_models.entities:
        ranker.add(entity.name, "entity", config.entity_weight)

    for relationship in db_models.relationships:
        ranker.add(relationship.from_entity, "relation", config.relation_weight)
        ranker.add(relationship.to_entity, "relation", config.relation_weight)

    for type_name in collect_type_names(survey):
        ranker.add(type_name, "type", config.type_weight)

    return DomainTerms(top_terms=ranker.ranked())
