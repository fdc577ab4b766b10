"""Rule evaluators. Register new rules in ``default_evaluators``."""

from __future__ import annotations

from dataquality.core.protocols import IEvaluator
from dataquality.evaluators.duplicate_matcher import DuplicateMatcher
from dataquality.evaluators.email_validator import EmailValidator
from dataquality.evaluators.orphan_checker import OrphanChecker
from dataquality.evaluators.phone_validator import PhoneValidator


def default_evaluators() -> list[IEvaluator]:
    """Every rule a full scan runs. Issue types must not overlap."""
    return [DuplicateMatcher(), EmailValidator(), PhoneValidator(), OrphanChecker()]


__all__ = [
    "DuplicateMatcher",
    "EmailValidator",
    "OrphanChecker",
    "PhoneValidator",
    "default_evaluators",
]
