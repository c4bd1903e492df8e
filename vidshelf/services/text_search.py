"""
Text Search Service

Free-text matching for the video feed. A user query is cleaned and split
into word terms; a video matches when every term occurs as a whole word in
its title or its description, and carries a relevance score built from
where the terms were found.

Features:
---------
- Query cleaning and tokenization (inner apostrophes stay: "don't" is one term)
- Boolean keywords (AND / OR / NOT, & | !) are dropped: every term is required
- PostgreSQL: tsvector @@ plainto_tsquery, served by a GIN index over
  ``to_tsvector('english', title || ' ' || description)`` (see the Alembic migration)
- Other databases (SQLite in tests): case-insensitive word-boundary regex
- Field weights: title hits count double
"""

import re
from typing import Any

from sqlalchemy import (
    ColumnElement,
    Float,
    String,
    and_,
    case,
    cast,
    func,
    literal,
    literal_column,
    or_,
)


_BOOLEAN_KEYWORDS = frozenset({"and", "or", "not", "&", "|", "!"})

TITLE_WEIGHT = 2.0
DESCRIPTION_WEIGHT = 1.0

POSTGRESQL = "postgresql"


class TextSearchService:
    """
    Builds the SQL predicate and score expression for a free-text query.

    Usage:
    ------
    search = TextSearchService(dialect=session.get_bind().dialect.name)
    terms = search.prepare_terms("react hooks")        # ["react", "hooks"]
    where = search.match_clause(terms, Video.title, Video.description)
    score = search.relevance_score(terms, Video.title, Video.description)
    """

    def __init__(
        self,
        title_weight: float = TITLE_WEIGHT,
        description_weight: float = DESCRIPTION_WEIGHT,
        max_terms: int = 10,
        dialect: str | None = None,
        language: str = "english",
    ):
        """
        Args:
            title_weight: Score added for each term found in the title
            description_weight: Score added for each term found in the description
            max_terms: Terms beyond this are ignored
            dialect: SQLAlchemy dialect name the expressions will run on
            language: Text search configuration used on PostgreSQL
        """
        if not re.fullmatch(r"[a-z_]+", language):
            raise ValueError(f"Invalid text search configuration: {language!r}")

        self.title_weight = title_weight
        self.description_weight = description_weight
        self.max_terms = max_terms
        self.dialect = dialect
        self.language = language

    @property
    def uses_tsvector(self) -> bool:
        return self.dialect == POSTGRESQL

    def prepare_terms(self, query_text: str | None) -> list[str]:
        """
        Turn a user query into a list of search terms.

        - Strips characters that carry no search value
        - Lower-cases
        - Drops boolean keywords
        - De-duplicates, keeping first-seen order

        Examples:
            "React Hooks!"        → ["react", "hooks"]
            "react AND hooks"     → ["react", "hooks"]
            "don't panic"         → ["don't", "panic"]
            "  "                  → []
        """
        if not query_text or not query_text.strip():
            return []

        cleaned = re.sub(r"[^\w\s']", " ", query_text.strip().lower())

        terms: list[str] = []
        for word in cleaned.split():
            word = word.strip("'")
            if not word or word in _BOOLEAN_KEYWORDS or word in terms:
                continue
            terms.append(word)

        return terms[: self.max_terms]

    # ----------------------------------------
    # Dialect-specific word matching
    # ----------------------------------------

    def _regconfig(self) -> ColumnElement[Any]:
        # Inlined so the expression matches the GIN index definition
        return literal_column(f"'{self.language}'::regconfig")

    def _coalesced(self, column: Any) -> ColumnElement[str]:
        return func.coalesce(column, literal_column("''", String), type_=String)

    def _tsvector(self, document: Any) -> ColumnElement[Any]:
        return func.to_tsvector(self._regconfig(), document)

    def _tsquery(self, text: str) -> ColumnElement[Any]:
        return func.plainto_tsquery(self._regconfig(), text)

    def _document(self, title_column: Any, description_column: Any) -> ColumnElement[Any]:
        return (
            self._coalesced(title_column)
            + literal_column("' '", String)
            + self._coalesced(description_column)
        )

    def _word_match(self, column: Any, term: str) -> ColumnElement[bool]:
        if self.uses_tsvector:
            return self._tsvector(self._coalesced(column)).bool_op("@@")(self._tsquery(term))
        return func.coalesce(column, "").regexp_match(rf"(?i)\b{re.escape(term)}\b")

    def match_clause(
        self,
        terms: list[str],
        title_column: Any,
        description_column: Any,
    ) -> ColumnElement[bool]:
        """
        Predicate requiring every term as a word of the title or the description.

        Raises:
            ValueError: If called with no terms; an empty query must not
                        reach the database at all.
        """
        if not terms:
            raise ValueError("match_clause requires at least one search term")

        if self.uses_tsvector:
            document = self._document(title_column, description_column)
            return self._tsvector(document).bool_op("@@")(self._tsquery(" ".join(terms)))

        return and_(*[
            or_(
                self._word_match(title_column, term),
                self._word_match(description_column, term),
            )
            for term in terms
        ])

    def relevance_score(
        self,
        terms: list[str],
        title_column: Any,
        description_column: Any,
    ) -> ColumnElement[float]:
        """
        Score expression: sum over terms of the weights of the fields
        that contain the term as a word.

        A two-term query matching both terms in the title and one in the
        description scores 2.0 + 2.0 + 1.0 = 5.0.
        """
        if not terms:
            return cast(literal(0.0), Float)

        parts = []
        for term in terms:
            parts.append(case(
                (self._word_match(title_column, term), self.title_weight),
                else_=0.0,
            ))
            parts.append(case(
                (self._word_match(description_column, term), self.description_weight),
                else_=0.0,
            ))

        score = parts[0]
        for part in parts[1:]:
            score = score + part
        return cast(score, Float)

    def explain_query(self, query_text: str) -> dict:
        """
        Explain how a query will be processed.

        Returns:
            Dictionary with the original query, the terms, the matching
            strategy and the weights
        """
        terms = self.prepare_terms(query_text)
        return {
            "original": query_text,
            "terms": terms,
            "strategy": "tsvector" if self.uses_tsvector else "word_regex",
            "title_weight": self.title_weight,
            "description_weight": self.description_weight,
        }
