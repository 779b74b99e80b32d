"""
Rule evaluation against one vitals/symptoms snapshot.

Key patterns:
- Explicit Result values for per-rule outcomes
- Error boundary per rule: a faulting condition counts as "did not trigger"
- Optional thread fan-out; rules share no state, so order is preserved by map()
"""

from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Generic, TypeVar

import structlog

from emergency.domain.catalog import RuleCatalog
from emergency.domain.models import Rule, Symptom, VitalSigns

logger = structlog.get_logger(__name__)

ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)


class Result(Generic[ValueT, ErrorT]):
    """
    Explicit error handling without exceptions for expected failures.

    Holds exactly one of a value or an error. ``False`` is a legitimate value.
    """

    def __init__(
        self, value: ValueT | None = None, error: ErrorT | None = None, *, is_error: bool = False
    ) -> None:
        if is_error and error is None:
            raise ValueError("Error result must carry an error")
        if not is_error and error is not None:
            raise ValueError("Result cannot have both value and error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error, is_error=True)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._error is None else default  # type: ignore

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error


class RuleEvaluator:
    """
    Runs every catalog rule against one snapshot.

    Triggered rules come back in catalog order regardless of worker count.
    """

    def __init__(self, catalog: RuleCatalog, max_workers: int = 1) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.catalog = catalog
        self.max_workers = max_workers
        self.logger = logger.bind(component="rule_evaluator")

    def check(
        self, rule: Rule, vitals: VitalSigns, symptoms: Sequence[Symptom]
    ) -> Result[bool, Exception]:
        """Evaluate a single rule, capturing any fault as an error result."""
        try:
            return Result.ok(bool(rule.condition.evaluate(vitals, symptoms)))
        except Exception as e:
            return Result.err(e)

    def evaluate(self, vitals: VitalSigns, symptoms: Sequence[Symptom]) -> list[Rule]:
        rules = self.catalog.all()
        snapshot = list(symptoms)

        if self.max_workers == 1:
            results = [self.check(rule, vitals, snapshot) for rule in rules]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                results = list(pool.map(lambda r: self.check(r, vitals, snapshot), rules))

        triggered: list[Rule] = []
        for rule, result in zip(rules, results, strict=True):
            if result.is_err():
                # Faulting rule counts as not triggered; keep scanning
                self.logger.warning(
                    "rule_evaluation_failed",
                    rule_id=rule.id,
                    error=str(result.unwrap_err()),
                )
                continue
            if result.unwrap():
                triggered.append(rule)

        self.logger.debug(
            "rules_evaluated",
            total_rules=len(rules),
            triggered=[r.id for r in triggered],
        )
        return triggered
