"""Step completion events - the single "which steps were just completed" diff"""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class StepCompletionEvent:
    index: int
    step_name: str
    completed_by: Any = None
    completed_at: Any = None


def detect_completed_steps(
    previous_steps: Optional[list[dict]], current_steps: Optional[list[dict]]
) -> list[StepCompletionEvent]:
    """
    Compare two workflowSteps arrays position by position.

    A step is newly completed when it is completed now and the step at the
    same index before was either absent or not completed. Events come back
    in array order.
    """
    previous_steps = previous_steps or []
    events = []
    for index, step in enumerate(current_steps or []):
        if not step or not step.get("completed"):
            continue
        previous = previous_steps[index] if index < len(previous_steps) else None
        if previous and previous.get("completed"):
            continue
        events.append(
            StepCompletionEvent(
                index=index,
                step_name=step.get("stepName") or "",
                completed_by=step.get("completedBy"),
                completed_at=step.get("completedAt"),
            )
        )
    return events
