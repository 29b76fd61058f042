"""Per-step error boundary.

``StepRunner.run`` is the only place a step action is invoked. Whatever the
action does, including raising an unexpected exception, the runner returns a
finalised ``StepOutcome`` and appends exactly one STEP line to the activity
log. Nothing raised by an action escapes into the orchestrator.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from diagcollect.audit.activity_log import ActivityLog
from diagcollect.collect.validator import min_size_for, validate_artifact
from diagcollect.errors import StepError
from diagcollect.models.outcomes import FailureReason, StepKind, StepOutcome, StepStatus

__all__ = ["ActionResult", "StepAction", "StepRunner"]


@dataclass(frozen=True)
class ActionResult:
    """What a step action reports back on normal return.

    Attributes
    ----------
    output_path : Path | None
        Candidate artifact path.
    exit_code : int
        Exit code of the external tool, 0 when none ran.
    source : str | None
        Channel, key or command identifier that produced the artifact.
    count : int | None
        Item count for extraction steps.
    """

    output_path: Path | None
    exit_code: int = 0
    source: str | None = None
    count: int | None = None


StepAction = Callable[[], "ActionResult | Path | None"]


def _coerce(result: ActionResult | Path | None) -> ActionResult:
    if isinstance(result, ActionResult):
        return result
    return ActionResult(output_path=result)


class StepRunner:
    """Runs one collection action behind an error boundary.

    Attributes
    ----------
    log : ActivityLog
        Log receiving one STEP line per run.
    """

    def __init__(self, log: ActivityLog) -> None:
        self.log = log

    def run(
        self,
        name: str,
        kind: StepKind,
        action: StepAction,
        *,
        output_path: Path | None = None,
        min_size_bytes: int | None = None,
    ) -> StepOutcome:
        """Execute ``action`` and turn whatever happens into an outcome.

        Parameters
        ----------
        name : str
            Step label used in the STEP marker.
        kind : StepKind
            Kind of step, selects the default size threshold.
        action : StepAction
            Zero-argument callable performing exactly one collection task.
        output_path : Path | None, optional
            Expected artifact path, reported when the action raises before
            returning one.
        min_size_bytes : int | None, optional
            Override for the kind's size threshold.

        Returns
        -------
        StepOutcome
            Finalised outcome; never raises for failures inside ``action``.
        """
        threshold = min_size_for(kind) if min_size_bytes is None else min_size_bytes

        try:
            result = _coerce(action())
        except StepError as e:
            file = e.file or output_path
            check = validate_artifact(file, threshold)
            outcome = StepOutcome(
                name=name,
                kind=kind,
                status=StepStatus.FAILED,
                output_path=file,
                reason=e.reason,
                error=str(e),
                exit_code=e.exit_code,
                exists=check.exists,
                size_ok=check.size_ok,
            )
        except Exception as e:
            outcome = StepOutcome(
                name=name,
                kind=kind,
                status=StepStatus.FAILED,
                output_path=output_path,
                reason=FailureReason.EXCEPTION,
                error=f"{type(e).__name__}: {e}",
            )
        else:
            outcome = self._judge(name, kind, result, output_path, threshold)

        self.log.step(outcome)
        return outcome

    def _judge(
        self,
        name: str,
        kind: StepKind,
        result: ActionResult,
        expected_path: Path | None,
        threshold: int,
    ) -> StepOutcome:
        """Validate the artifact an action returned."""
        path = result.output_path or expected_path
        check = validate_artifact(path, threshold)

        if result.exit_code != 0:
            reason: FailureReason | None = FailureReason.EXPORT_FAILED
        elif not check.valid:
            reason = FailureReason.EMPTY_OR_MISSING
        else:
            reason = None

        return StepOutcome(
            name=name,
            kind=kind,
            status=StepStatus.SUCCESS if reason is None else StepStatus.FAILED,
            output_path=path,
            reason=reason,
            source=result.source,
            exit_code=result.exit_code,
            exists=check.exists,
            size_ok=check.size_ok,
            count=result.count,
        )
