import pytest

from src.engine import qc
from src.engine.enums import DefectSeverity, QCResult
from src.engine.qc import Checkpoint
from src.engine.results import EngineError, Rejected


def test_pass_rate_edges():
    assert qc.pass_rate(0, 0) == 0
    for x in (1, 7, 100, 1000):
        assert qc.pass_rate(x, x) == 100
    assert qc.pass_rate(1, 8) == 13
    assert qc.pass_rate(2, 3) == 67


@pytest.mark.parametrize("rate", [0, 50, 79, 80, 99, 100])
@pytest.mark.parametrize("rework", [False, True])
def test_critical_fail_always_fails(rate, rework):
    assert qc.determine_overall_result(rate, rework, True) == QCResult.FAIL


@pytest.mark.parametrize(
    "rate, rework, expected",
    [
        (79, False, QCResult.FAIL),
        (79, True, QCResult.FAIL),
        (80, False, QCResult.PASS_WITH_REWORK),
        (99, False, QCResult.PASS_WITH_REWORK),
        (100, True, QCResult.PASS_WITH_REWORK),
        (100, False, QCResult.PASS),
    ],
)
def test_overall_result_precedence(rate, rework, expected):
    assert qc.determine_overall_result(rate, rework, False) == expected


def test_has_critical_defect_needs_failed_checkpoint():
    assert not qc.has_critical_defect([Checkpoint("print_quality", True, defect_severity=DefectSeverity.CRITICAL)])
    assert qc.has_critical_defect([
        Checkpoint("color_accuracy", True),
        Checkpoint("print_quality", False, defect_severity="critical"),
    ])
    assert not qc.has_critical_defect([Checkpoint("print_quality", False, defect_severity=DefectSeverity.MAJOR)])


def test_eighty_two_percent_passes_with_rework():
    evaluation = qc.evaluate(total=100, passed=82, failed=18)
    assert evaluation.pass_rate == 82
    assert evaluation.overall_result == QCResult.PASS_WITH_REWORK
    assert evaluation.follow_up_required  # more than 10 failed units


def test_evaluate_rejects_bad_quantities():
    over = qc.evaluate(total=10, passed=8, failed=3)
    assert isinstance(over, Rejected)
    assert over.error == EngineError.INVALID_QUANTITY

    negative = qc.evaluate(total=10, passed=-1, failed=0)
    assert isinstance(negative, Rejected)


def test_follow_up_and_worst_severity():
    clean = qc.evaluate(total=50, passed=50, failed=0)
    assert clean.overall_result == QCResult.PASS
    assert clean.follow_up_required is False
    assert clean.worst_severity is None

    major = qc.evaluate(
        total=50,
        passed=48,
        failed=2,
        checkpoints=[
            Checkpoint("stitch_quality", False, defect_severity=DefectSeverity.MINOR),
            Checkpoint("position", False, defect_severity=DefectSeverity.MAJOR),
        ],
    )
    assert major.worst_severity == DefectSeverity.MAJOR
    assert major.follow_up_required

    critical = qc.evaluate(
        total=50, passed=50, failed=0,
        checkpoints=[Checkpoint("fabric_damage", False, defect_severity=DefectSeverity.CRITICAL)],
    )
    assert critical.overall_result == QCResult.FAIL
    assert critical.has_critical_defect


def test_default_checkpoints():
    codes = [t.code for t in qc.default_checkpoints("DTG")]
    assert codes == ["color_accuracy", "print_alignment", "print_quality", "fabric_damage"]
    assert [t.code for t in qc.default_checkpoints(None)] == ["general_quality", "specifications"]
    assert [t.code for t in qc.default_checkpoints("screen-print")] == ["general_quality", "specifications"]
