"""Money arithmetic with deterministic rounding and hashing."""

from __future__ import annotations

import hashlib
import json
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from piecework_payroll.calculators.types import ReviewStatus, WorkUnit


class AmountCalculator:
    """Piece-rate estimates and approval splits.

    Rounding:
    - Currency to 2 decimals, half-up
    - Products are computed at full precision and rounded once
    - pending is always derived by subtraction so the split reconciles
      to the estimate exactly
    """

    OUTPUT_PRECISION = Decimal("0.01")
    RECONCILIATION_TOLERANCE = Decimal("0.01")
    HUNDRED = Decimal("100")
    ZERO = Decimal("0.00")

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places (cents)."""
        return amount.quantize(AmountCalculator.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def estimate(
        work_unit: WorkUnit, meters_square: Decimal, meters_linear: Decimal
    ) -> Decimal:
        """estimated = m2 x rate_m2 + mb x rate_mb."""
        raw = (
            meters_square * work_unit.rate_per_square_meter
            + meters_linear * work_unit.rate_per_linear_meter
        )
        return AmountCalculator.round_to_cents(raw)

    @staticmethod
    def split(
        estimated: Decimal, approval_percent: Decimal, status: ReviewStatus
    ) -> tuple[Decimal, Decimal, Decimal]:
        """Split an estimate into (approved, pending, rejected)."""
        zero = AmountCalculator.ZERO
        estimated = AmountCalculator.round_to_cents(estimated)

        if status == ReviewStatus.APPROVED:
            return estimated, zero, zero
        if status == ReviewStatus.REJECTED:
            return zero, zero, estimated

        approved = AmountCalculator.round_to_cents(
            estimated * approval_percent / AmountCalculator.HUNDRED
        )
        return approved, estimated - approved, zero

    @staticmethod
    def reconciles(
        estimated: Decimal, approved: Decimal, pending: Decimal, rejected: Decimal
    ) -> bool:
        """Check approved + pending + rejected == estimated within tolerance."""
        drift = abs((approved + pending + rejected) - estimated)
        return drift <= AmountCalculator.RECONCILIATION_TOLERANCE

    @staticmethod
    def canonical_json(canonical: dict[str, Any]) -> str:
        """Serialize a canonical dict deterministically."""
        return json.dumps(canonical, sort_keys=True, separators=(",", ":"))

    @staticmethod
    def compute_fingerprint(canonical: dict[str, Any]) -> str:
        """Compute a deterministic hash of a canonical dict.

        Identical inputs always produce identical fingerprints.
        """
        json_str = AmountCalculator.canonical_json(canonical)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]
