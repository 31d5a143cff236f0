from helpers import completed, pending

from oms.domain.workflows.events import detect_completed_steps


def test_newly_completed_steps_are_reported_in_order():
    previous = [pending("Scanned"), pending("QC"), pending("Delivered")]
    current = [completed("Scanned", by=4), completed("QC"), pending("Delivered")]

    events = detect_completed_steps(previous, current)

    assert [(e.index, e.step_name) for e in events] == [(0, "Scanned"), (1, "QC")]
    assert events[0].completed_by == 4


def test_already_completed_steps_are_ignored():
    previous = [completed("Scanned"), pending("QC")]
    current = [completed("Scanned"), completed("QC")]

    events = detect_completed_steps(previous, current)

    assert [e.step_name for e in events] == ["QC"]


def test_step_without_previous_counterpart_counts_as_new():
    events = detect_completed_steps([], [completed("Scanned")])
    assert [e.step_name for e in events] == ["Scanned"]


def test_missing_arrays():
    assert detect_completed_steps(None, None) == []
    assert detect_completed_steps([completed("Scanned")], None) == []
