"""Shot outcome aggregation.

Raw per-shot tokens come back from a sampler either as hex literals
(``"0x3"``) or as bit-strings (``"11"``). Both map onto one integer domain
``[0, 2**N - 1]``; buckets and percentages are derived from that value.
"""

import logging
import re
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel

logger = logging.getLogger("tally")

ALL_ZEROS = "all zeros"
ALL_ONES = "all ones"
OTHER = "other"

PERCENT_SENTINEL = "N/A"

# (pattern, base, prefix length); ASCII only, unsigned, no separators
_LITERALS = (
    (re.compile(r"0[xX][0-9a-fA-F]+"), 16, 2),
    (re.compile(r"0[oO][0-7]+"), 8, 2),
    (re.compile(r"0[bB][01]+"), 2, 2),
    (re.compile(r"[01]+"), 2, 0),
)


class TallyError(ValueError):
    pass


class MalformedOutcome(TallyError):
    def __init__(self, token, reason: str):
        super().__init__(f"Malformed outcome {token!r}: {reason}")
        self.token = token
        self.reason = reason


class EmptyInput(TallyError):
    """No classified shots to compute percentages from."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class AggregationResult(BaseModel):
    qubit_count: int
    counts: Dict[str, int]
    outcomes: Dict[str, int] = {}
    denominator: int = 0
    malformed: int = 0
    total_tokens: int = 0

    @property
    def empty_reason(self) -> Optional[str]:
        if self.denominator > 0:
            return None
        if self.total_tokens == 0:
            return "no shots sampled"
        return f"all {self.total_tokens} shots malformed"

    def require_shots(self) -> "AggregationResult":
        reason = self.empty_reason
        if reason is not None:
            raise EmptyInput(reason)
        return self


def _check_width(qubit_count: int) -> None:
    if qubit_count < 1:
        raise ValueError(f"qubit_count must be >= 1, got {qubit_count}")


def bucket_labels(qubit_count: int) -> List[str]:
    """Buckets in display order."""
    _check_width(qubit_count)
    if qubit_count == 2:
        return ["00", "01", "10", "11"]
    return [ALL_ZEROS, ALL_ONES, OTHER]


def normalize(token: str, qubit_count: int) -> int:
    _check_width(qubit_count)
    if not isinstance(token, str):
        raise MalformedOutcome(token, "not a string")
    text = token.strip()
    for pattern, base, skip in _LITERALS:
        if pattern.fullmatch(text):
            value = int(text[skip:], base)
            break
    else:
        raise MalformedOutcome(token, "neither a radix literal nor a bit-string")

    if not 0 <= value < (1 << qubit_count):
        raise MalformedOutcome(token, f"value {value} out of range for {qubit_count} qubits")
    return value


def classify(value: int, qubit_count: int) -> str:
    _check_width(qubit_count)
    top = (1 << qubit_count) - 1
    if not 0 <= value <= top:
        raise MalformedOutcome(value, f"value out of range for {qubit_count} qubits")
    if qubit_count == 2:
        # four-way breakdown is just the 2-bit pattern of the value
        return format(value, "02b")
    if value == 0:
        return ALL_ZEROS
    if value == top:
        return ALL_ONES
    return OTHER


def aggregate(tokens: Iterable[str], qubit_count: int) -> AggregationResult:
    counts = {label: 0 for label in bucket_labels(qubit_count)}
    values: Dict[int, int] = {}
    total = 0
    malformed = 0

    for token in tokens:
        total += 1
        try:
            value = normalize(token, qubit_count)
        except MalformedOutcome as e:
            malformed += 1
            logger.debug("outcome_skipped", extra={"token": repr(token), "reason": e.reason})
            continue
        counts[classify(value, qubit_count)] += 1
        values[value] = values.get(value, 0) + 1

    width = f"0{qubit_count}b"
    outcomes = {format(v, width): values[v] for v in sorted(values)}
    result = AggregationResult(
        qubit_count=qubit_count,
        counts=counts,
        outcomes=outcomes,
        denominator=total - malformed,
        malformed=malformed,
        total_tokens=total,
    )

    if malformed:
        logger.warning("outcomes_malformed", extra={"malformed": malformed, "total": total})
    if result.empty_reason is not None:
        logger.warning("aggregation_empty", extra={"reason": result.empty_reason})
    return result


def format_percentage(count: int, denominator: int) -> str:
    if denominator <= 0:
        return PERCENT_SENTINEL
    return f"{100.0 * count / denominator:.1f}%"


def format_report(result: AggregationResult, threshold: Optional[float] = None) -> List[str]:
    """Render one line per bucket, in fixed display order.

    Filtering is opt-in: with ``threshold=None`` every bucket is shown.
    Callers that want the usual display cut pass
    ``settings.display_threshold`` (1.0 by default). A threshold hides bucket
    lines at or below that percentage, only for the generic
    all-zeros/all-ones/other scheme and never when percentages are
    undefined. ``result`` is left untouched.
    """
    suppress = threshold is not None and result.qubit_count != 2 and result.denominator > 0
    lines = []
    for label in bucket_labels(result.qubit_count):
        count = result.counts.get(label, 0)
        if suppress and 100.0 * count / result.denominator <= threshold:
            continue
        lines.append(f"{label}: {count} ({format_percentage(count, result.denominator)})")

    reason = result.empty_reason
    if reason is not None:
        lines.append(f"warning: {reason}")
    elif result.malformed:
        lines.append(f"warning: skipped {result.malformed} malformed of {result.total_tokens} shots")
    return lines


def format_outcomes(result: AggregationResult, threshold: float = 1.0) -> List[str]:
    """List individual outcomes above ``threshold`` percent, most frequent first."""
    if result.denominator <= 0:
        return []
    ranked = sorted(result.outcomes.items(), key=lambda kv: (-kv[1], kv[0]))
    return [
        f"|{bits}⟩: {count} ({format_percentage(count, result.denominator)})"
        for bits, count in ranked
        if 100.0 * count / result.denominator > threshold
    ]
