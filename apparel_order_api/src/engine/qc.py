"""
Quality-control inspection evaluation.

Result precedence is significant: a critical defect fails the batch even at a
perfect pass rate, and 80% is a hard floor regardless of rework.
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from src.engine.enums import DefectSeverity, QCResult
from src.engine.numbers import percent
from src.engine.results import EngineError, Rejected

FAIL_BELOW_PASS_RATE = 80
FOLLOW_UP_FAILED_QTY = 10

_SEVERITY_RANK = {
    DefectSeverity.MINOR: 1,
    DefectSeverity.MAJOR: 2,
    DefectSeverity.CRITICAL: 3,
}


@dataclass(frozen=True)
class Checkpoint:
    """One inspected characteristic of a batch."""
    code: str
    passed: bool
    name: Optional[str] = None
    defect_severity: Optional[DefectSeverity] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class CheckpointTemplate:
    code: str
    name: str
    required: bool = True


@dataclass(frozen=True)
class QCEvaluation:
    pass_rate: int
    overall_result: QCResult
    has_critical_defect: bool
    worst_severity: Optional[DefectSeverity]
    follow_up_required: bool


def _severity(checkpoint) -> Optional[DefectSeverity]:
    value = getattr(checkpoint, "defect_severity", None)
    return DefectSeverity(value) if value is not None else None


# PUBLIC_INTERFACE
def pass_rate(passed: int, total: int) -> int:
    """Integer percent of passed units; 0 when nothing was inspected."""
    return percent(passed, total)


# PUBLIC_INTERFACE
def determine_overall_result(rate: int, has_rework: bool, has_critical_fail: bool) -> QCResult:
    """First match wins: critical or below 80% fails; rework or below 100% passes with rework."""
    if has_critical_fail or rate < FAIL_BELOW_PASS_RATE:
        return QCResult.FAIL
    if has_rework or rate < 100:
        return QCResult.PASS_WITH_REWORK
    return QCResult.PASS


# PUBLIC_INTERFACE
def has_critical_defect(checkpoints: Iterable) -> bool:
    """True iff some failed checkpoint carries a critical defect."""
    return any(
        not cp.passed and _severity(cp) == DefectSeverity.CRITICAL
        for cp in checkpoints
    )


def worst_severity(checkpoints: Iterable) -> Optional[DefectSeverity]:
    """Most severe defect among the failed checkpoints, if any."""
    severities = [_severity(cp) for cp in checkpoints if not cp.passed]
    ranked = [s for s in severities if s is not None]
    if not ranked:
        return None
    return max(ranked, key=_SEVERITY_RANK.__getitem__)


# PUBLIC_INTERFACE
def validate_quantities(total: int, passed: int, failed: int, rework: int = 0) -> Optional[Rejected]:
    """Return Rejected(InvalidQuantity) for negative counts or passed+failed above total."""
    if min(total, passed, failed, rework) < 0:
        return Rejected(EngineError.INVALID_QUANTITY, "QC quantities must not be negative")
    if passed + failed > total:
        return Rejected(
            EngineError.INVALID_QUANTITY,
            f"Passed ({passed}) plus failed ({failed}) exceeds inspected total ({total})",
        )
    return None


def follow_up_required(
    result: QCResult,
    failed: int,
    severity: Optional[DefectSeverity],
) -> bool:
    if severity == DefectSeverity.CRITICAL:
        return True
    if result == QCResult.FAIL:
        return True
    if failed > FOLLOW_UP_FAILED_QTY:
        return True
    return severity == DefectSeverity.MAJOR and failed > 0


# PUBLIC_INTERFACE
def evaluate(
    total: int,
    passed: int,
    failed: int,
    rework: int = 0,
    checkpoints: Sequence = (),
) -> Union[QCEvaluation, Rejected]:
    """
    Evaluate one inspection.

    Parameters:
        total: inspected units
        passed: units that passed
        failed: units that failed
        rework: units sent back for rework
        checkpoints: Checkpoint values or records with passed/defect_severity
    Returns:
        QCEvaluation, or Rejected with InvalidQuantity.
    """
    rejected = validate_quantities(total, passed, failed, rework)
    if rejected is not None:
        return rejected

    rate = pass_rate(passed, total)
    critical = has_critical_defect(checkpoints)
    result = determine_overall_result(rate, rework > 0, critical)
    worst = worst_severity(checkpoints)
    return QCEvaluation(
        pass_rate=rate,
        overall_result=result,
        has_critical_defect=critical,
        worst_severity=worst,
        follow_up_required=follow_up_required(result, failed, worst),
    )


def _templates(*pairs: Tuple[str, str]) -> Tuple[CheckpointTemplate, ...]:
    return tuple(CheckpointTemplate(code, name) for code, name in pairs)


DEFAULT_CHECKPOINTS: Mapping[str, Tuple[CheckpointTemplate, ...]] = MappingProxyType({
    "dtg": _templates(
        ("color_accuracy", "Color Accuracy"),
        ("print_alignment", "Print Alignment"),
        ("print_quality", "Print Quality"),
        ("fabric_damage", "Fabric Condition"),
    ),
    "dtf": _templates(
        ("transfer_adhesion", "Transfer Adhesion"),
        ("color_accuracy", "Color Accuracy"),
        ("print_alignment", "Print Alignment"),
        ("edge_quality", "Edge Quality"),
    ),
    "embroidery": _templates(
        ("thread_color", "Thread Color"),
        ("stitch_quality", "Stitch Quality"),
        ("position", "Position"),
        ("backing_clean", "Backing Clean"),
    ),
    "silkscreen": _templates(
        ("ink_coverage", "Ink Coverage"),
        ("registration", "Registration"),
        ("print_cleanliness", "Print Cleanliness"),
    ),
    "sewing": _templates(
        ("seam_quality", "Seam Quality"),
        ("measurements", "Measurements"),
        ("finishing", "Finishing"),
    ),
})

GENERIC_CHECKPOINTS = _templates(
    ("general_quality", "General Quality"),
    ("specifications", "Specifications"),
)


# PUBLIC_INTERFACE
def default_checkpoints(work_type_code: Optional[str]) -> List[CheckpointTemplate]:
    """Checkpoint templates for a work type, falling back to the generic pair."""
    return list(DEFAULT_CHECKPOINTS.get((work_type_code or "").lower(), GENERIC_CHECKPOINTS))
