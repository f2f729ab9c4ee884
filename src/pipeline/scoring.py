"""Win-probability scoring from categorical deal attributes.

The probability is a plain product of per-factor coefficients read from the
``ProbabilityCoefficient`` table:

    1 x project type (optional) x maturity x client type x relationship
      x conservative bonus (only when the flag is set)

A factor value missing from the table weighs 1 and is logged. The product is
not clamped: strong factors can push it slightly above 1.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Iterable, Protocol

from django.conf import settings
from django.core.cache import cache as default_cache

from pipeline.models import FactorType, ProbabilityCoefficient
from pipeline.utils import ratio, to_decimal

logger = logging.getLogger(__name__)

NEUTRAL = Decimal("1")
CONSERVATIVE_FACTOR_VALUE = "Yes"


@dataclass(frozen=True)
class CoefficientRow:
    factor_type: str
    factor_value: str
    coefficient: Decimal


@dataclass(frozen=True)
class ProbabilityFactors:
    project_maturity: str
    client_type: str
    client_relationship: str
    conservative_approach: bool = False
    project_type: str | None = None

    @classmethod
    def from_opportunity(cls, opportunity) -> "ProbabilityFactors":
        return cls(
            project_type=opportunity.project_type or None,
            project_maturity=opportunity.project_maturity,
            client_type=opportunity.client_type,
            client_relationship=opportunity.client_relationship,
            conservative_approach=bool(opportunity.conservative_approach),
        )


@dataclass(frozen=True)
class ProbabilityBreakdown:
    base: Decimal
    project_type_coef: Decimal
    maturity_coef: Decimal
    client_type_coef: Decimal
    relationship_coef: Decimal
    conservative_coef: Decimal
    final: Decimal

    def as_dict(self) -> dict[str, str]:
        return {key: str(value) for key, value in asdict(self).items()}


class CoefficientSource(Protocol):
    def get(self) -> list[CoefficientRow]: ...

    def invalidate(self) -> None: ...


def load_active_coefficients() -> list[CoefficientRow]:
    """Read every active coefficient from the database."""
    return [
        CoefficientRow(factor_type, factor_value, coefficient)
        for factor_type, factor_value, coefficient in ProbabilityCoefficient.objects.filter(
            is_active=True,
        ).values_list("factor_type", "factor_value", "coefficient")
    ]


class CoefficientCache:
    """Read-through cache of the active coefficient table.

    Backed by Django's cache framework (Redis outside of tests). A backend
    failure degrades to a direct database read; it is logged, never raised.
    """

    CACHE_KEY = "probability:coefficients"

    def __init__(self, backend=None, timeout: int | None = None, loader=load_active_coefficients) -> None:
        self.backend = backend if backend is not None else default_cache
        self.timeout = timeout if timeout is not None else settings.PROBABILITY_COEFFICIENT_CACHE_TTL
        self.loader = loader

    def get(self) -> list[CoefficientRow]:
        try:
            cached = self.backend.get(self.CACHE_KEY)
        except Exception as exc:
            logger.warning("coefficient cache read failed, loading from database: %s", exc, exc_info=True)
            return self.loader()

        if cached is not None:
            return [CoefficientRow(t, v, Decimal(c)) for t, v, c in cached]

        rows = self.loader()
        try:
            self.backend.set(
                self.CACHE_KEY,
                [(row.factor_type, row.factor_value, str(row.coefficient)) for row in rows],
                self.timeout,
            )
        except Exception as exc:
            logger.warning("coefficient cache write failed: %s", exc, exc_info=True)
        return rows

    def invalidate(self) -> None:
        try:
            self.backend.delete(self.CACHE_KEY)
        except Exception as exc:
            logger.error("coefficient cache invalidation failed: %s", exc, exc_info=True)


class StaticCoefficientSource:
    """Fixed in-memory coefficient table (fixtures, previews, tests)."""

    def __init__(self, rows: Iterable[CoefficientRow | tuple]) -> None:
        self.rows = [
            row if isinstance(row, CoefficientRow)
            else CoefficientRow(row[0], row[1], to_decimal(row[2]))
            for row in rows
        ]

    def get(self) -> list[CoefficientRow]:
        return list(self.rows)

    def invalidate(self) -> None:
        pass


class ProbabilityScoringEngine:
    """Score a factor set against the coefficient table."""

    def __init__(self, cache: CoefficientSource) -> None:
        self.cache = cache

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def score(self, factors: ProbabilityFactors) -> Decimal:
        """Return the win probability rounded to 4 places."""
        return self.score_with_breakdown(factors).final

    def score_with_breakdown(self, factors: ProbabilityFactors) -> ProbabilityBreakdown:
        """Return every per-factor coefficient together with the final score."""
        table = self._index(self.cache.get())

        project_type_coef = (
            self._lookup(table, FactorType.PROJECT_TYPE, factors.project_type)
            if factors.project_type
            else NEUTRAL
        )
        maturity_coef = self._lookup(table, FactorType.PROJECT_MATURITY, factors.project_maturity)
        client_type_coef = self._lookup(table, FactorType.CLIENT_TYPE, factors.client_type)
        relationship_coef = self._lookup(table, FactorType.CLIENT_RELATIONSHIP, factors.client_relationship)
        conservative_coef = (
            self._lookup(table, FactorType.CONSERVATIVE_APPROACH, CONSERVATIVE_FACTOR_VALUE)
            if factors.conservative_approach
            else NEUTRAL
        )

        probability = NEUTRAL
        for coef in (project_type_coef, maturity_coef, client_type_coef, relationship_coef, conservative_coef):
            probability *= coef

        return ProbabilityBreakdown(
            base=NEUTRAL,
            project_type_coef=project_type_coef,
            maturity_coef=maturity_coef,
            client_type_coef=client_type_coef,
            relationship_coef=relationship_coef,
            conservative_coef=conservative_coef,
            final=ratio(probability),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _index(rows: Iterable[CoefficientRow]) -> dict[tuple[str, str], Decimal]:
        return {(str(row.factor_type), row.factor_value): to_decimal(row.coefficient) for row in rows}

    @staticmethod
    def _lookup(table: dict[tuple[str, str], Decimal], factor_type: str, factor_value: str) -> Decimal:
        coefficient = table.get((str(factor_type), factor_value))
        if coefficient is None:
            logger.warning(
                "Coefficient not found for %s:%s, using default 1.0",
                factor_type,
                factor_value,
            )
            return NEUTRAL
        return coefficient


def get_scoring_engine() -> ProbabilityScoringEngine:
    """Engine wired to the shared Django cache."""
    return ProbabilityScoringEngine(CoefficientCache())
