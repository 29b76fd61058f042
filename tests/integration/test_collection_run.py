"""End-to-end collection runs against fake collaborators."""

import json
import zipfile
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import jsonschema
import pytest

from conftest import FakeCommands, FakeEventLogs, FakePrivilege, FakeRegistry, FakeReports
from diagcollect.api import read_markers
from diagcollect.engine import CollectionConfig, CollectionResult, RunState, run_collection
from diagcollect.engine.run import CollectionRun
from diagcollect.errors import InsufficientPrivilegeError
from diagcollect.models import FailureReason, StepKind, StepStatus
from diagcollect.tools import Toolset
from diagcollect.utils import get_iso_timestamp

_SCHEMAS_DIR = Path(__file__).parent.parent.parent / "schemas"

START = datetime(2026, 10, 16, 14, 5, 12)


def _clock() -> datetime:
    return START


def _run(tmp_path: Path, toolset: Toolset, **kwargs) -> CollectionResult:
    config = CollectionConfig(output_path=tmp_path, **kwargs)
    return run_collection(config, toolset=toolset, clock=_clock, echo=None)


def _step_lines(path: Path) -> list[str]:
    return [line for line in path.read_text(encoding="utf-8").splitlines() if "STEP: " in line]


@pytest.mark.integration
def test_full_bitlocker_run(tmp_path: Path, make_toolset: Callable[..., Toolset]) -> None:
    """Test a clean BitLocker run collects every artifact into one root."""
    result = _run(tmp_path, make_toolset())

    assert result.state is RunState.COMPLETED
    assert result.log_root == tmp_path / "BitLockerLogs-16-10-2026-14-05"
    assert len(result.outcomes) == 9
    assert all(o.status is StepStatus.SUCCESS for o in result.outcomes)
    for outcome in result.outcomes:
        assert outcome.output_path is not None
        assert outcome.output_path.parent == result.log_root
        assert outcome.output_path.is_file()

    assert len(_step_lines(result.log_path)) == 9
    assert result.archive_path is None


@pytest.mark.integration
def test_log_header_and_completion_lines(
    tmp_path: Path,
    make_toolset: Callable[..., Toolset],
) -> None:
    """Test the log opens with the run header and closes with the tally."""
    result = _run(tmp_path, make_toolset(), family="tpm")

    lines = result.log_path.read_text(encoding="utf-8").splitlines()
    assert "[INFO] TPM diagnostic collection started; run_id=" in lines[0]
    assert f"[INFO] Output directory: '{result.log_root}'" in lines[1]
    assert lines[-1].endswith(
        f"Collection complete: 5/5 steps succeeded. Output directory: '{result.log_root}'"
    )


@pytest.mark.integration
def test_log_lines_are_mirrored_to_console(
    tmp_path: Path,
    make_toolset: Callable[..., Toolset],
) -> None:
    """Test every log line is also sent to the console sink."""
    echoed: list[str] = []
    config = CollectionConfig(family="tpm", output_path=tmp_path)

    result = run_collection(config, toolset=make_toolset(), clock=_clock, echo=echoed.append)

    assert echoed == result.log_path.read_text(encoding="utf-8").splitlines()


@pytest.mark.integration
def test_raising_step_does_not_stop_the_run(
    tmp_path: Path,
    make_toolset: Callable[..., Toolset],
) -> None:
    """Test an exception inside one step is contained and later steps run."""
    registry = FakeRegistry()
    toolset = make_toolset(commands=FakeCommands(failing=["tpmtool"]), registry=registry)

    result = _run(tmp_path, toolset, family="tpm")

    first = result.outcomes[0]
    assert first.status is StepStatus.FAILED
    assert first.reason is FailureReason.EXCEPTION
    assert first.error == "RuntimeError: tpmtool crashed"
    assert [o.status for o in result.outcomes[1:]] == [StepStatus.SUCCESS] * 4
    assert len(registry.exported) == 2

    line = _step_lines(result.log_path)[0]
    assert "[ERROR] STEP: TPM device information export failed; reason='exception'" in line
    assert line.endswith("error='RuntimeError: tpmtool crashed'")


@pytest.mark.integration
def test_fallback_failure_in_the_middle(
    tmp_path: Path,
    make_toolset: Callable[..., Toolset],
    evtx_payload: bytes,
) -> None:
    """Test step 2 of 5 failing every channel leaves steps 3 to 5 intact."""
    event_logs = FakeEventLogs(channels={"System": evtx_payload})

    result = _run(tmp_path, make_toolset(event_logs=event_logs), family="tpm")

    statuses = [o.status for o in result.outcomes]
    assert statuses == [
        StepStatus.SUCCESS,
        StepStatus.FAILED,
        StepStatus.SUCCESS,
        StepStatus.SUCCESS,
        StepStatus.SUCCESS,
    ]
    failed = result.outcomes[1]
    assert failed.reason is FailureReason.NO_CHANNEL_SUCCEEDED
    assert failed.attempted == ("Microsoft-Windows-TPM-WMI/Admin", "Microsoft-Windows-TPM-WMI")
    assert _step_lines(result.log_path)[1].endswith(
        "attempted='Microsoft-Windows-TPM-WMI/Admin, Microsoft-Windows-TPM-WMI'"
    )


@pytest.mark.integration
def test_missing_tool_is_source_not_found(
    tmp_path: Path,
    make_toolset: Callable[..., Toolset],
) -> None:
    """Test an uninstalled query tool fails with exit=n/a and no artifact."""
    toolset = make_toolset(commands=FakeCommands(missing=["manage-bde"]))

    result = _run(tmp_path, toolset)

    status, protectors = result.outcomes[0], result.outcomes[1]
    for outcome in (status, protectors):
        assert outcome.reason is FailureReason.SOURCE_NOT_FOUND
        assert not outcome.exists
    assert result.outcomes[2].succeeded
    assert "reason='source not found'; exit=n/a; exists=False; sizeOK=False" in (
        _step_lines(result.log_path)[0]
    )


@pytest.mark.integration
def test_system_drive_is_substituted(
    tmp_path: Path,
    make_toolset: Callable[..., Toolset],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Test the protectors query targets the system drive."""
    monkeypatch.setenv("SystemDrive", "D:")
    commands = FakeCommands()

    _run(tmp_path, make_toolset(commands=commands))

    assert ["manage-bde", "-protectors", "-get", "D:"] in commands.calls


@pytest.mark.integration
def test_nothing_succeeds_still_completes(
    tmp_path: Path,
    make_toolset: Callable[..., Toolset],
) -> None:
    """Test a run where every step fails still completes and summarizes."""
    toolset = make_toolset(
        commands=FakeCommands(missing=["manage-bde", "tpmtool"]),
        event_logs=FakeEventLogs(channels={}),
        registry=FakeRegistry(
            missing=[
                r"HKLM\SOFTWARE\Policies\Microsoft\FVE",
                r"HKLM\SYSTEM\CurrentControlSet\Control\BitLockerStatus",
            ]
        ),
    )

    result = _run(tmp_path, toolset)

    assert result.state is RunState.COMPLETED
    assert len(result.failed) == 9
    assert result.succeeded == []
    summary = json.loads(result.summary_path.read_text(encoding="utf-8"))
    assert summary["counts"] == {"success": 0, "failed": 9}
    assert "Collection complete: 0/9 steps succeeded." in (
        result.log_path.read_text(encoding="utf-8")
    )


@pytest.mark.integration
def test_mdm_extraction(
    tmp_path: Path,
    make_toolset: Callable[..., Toolset],
    mdm_document: str,
) -> None:
    """Test the nested report is generated under the root and filtered."""
    reports = FakeReports(document=mdm_document)

    result = _run(tmp_path, make_toolset(reports=reports), mdm=True)

    outcome = result.outcomes[-1]
    assert outcome.kind is StepKind.REPORT_EXTRACTION
    assert outcome.status is StepStatus.SUCCESS
    assert outcome.count == 2
    assert reports.calls == [result.log_root / "MDM"]
    assert (result.log_root / "MDM_BitLocker.xml").is_file()
    assert _step_lines(result.log_path)[-1].endswith(
        f"STEP: MDM XML parsing succeeded; output='{result.log_root / 'MDM_BitLocker.xml'}'; "
        "count=2"
    )


@pytest.mark.integration
def test_mdm_generator_failure_is_warning(
    tmp_path: Path,
    make_toolset: Callable[..., Toolset],
    mdm_document: str,
) -> None:
    """Test a non-zero generator exit is logged and the report still parsed."""
    reports = FakeReports(document=mdm_document, exit_code=1)

    result = _run(tmp_path, make_toolset(reports=reports), mdm=True)

    assert result.outcomes[-1].succeeded
    assert "[WARN] MDM report generator exited with 1" in (
        result.log_path.read_text(encoding="utf-8")
    )


@pytest.mark.integration
def test_mdm_report_missing(tmp_path: Path, make_toolset: Callable[..., Toolset]) -> None:
    """Test a generator that writes nothing fails with its own reason."""
    result = _run(tmp_path, make_toolset(reports=FakeReports(document=None)), mdm=True)

    outcome = result.outcomes[-1]
    assert outcome.reason is FailureReason.SOURCE_DOCUMENT_NOT_FOUND
    assert "STEP: MDM XML parsing failed; reason='source document not found'" in (
        _step_lines(result.log_path)[-1]
    )


@pytest.mark.integration
def test_mdm_zero_matches(tmp_path: Path, make_toolset: Callable[..., Toolset]) -> None:
    """Test a report with no matching areas fails but leaves an empty document."""
    document = "<Report><Area><PolicyAreaName>Update</PolicyAreaName></Area></Report>"

    result = _run(tmp_path, make_toolset(reports=FakeReports(document=document)), mdm=True)

    outcome = result.outcomes[-1]
    assert outcome.reason is FailureReason.NO_MATCHING_NODES
    assert (result.log_root / "MDM_BitLocker.xml").is_file()


@pytest.mark.integration
def test_archive_next_to_root(tmp_path: Path, make_toolset: Callable[..., Toolset]) -> None:
    """Test the archive lands beside the root and contains the log."""
    result = _run(tmp_path, make_toolset(), mdm=True, archive=True)

    archive = tmp_path / "BitLockerLogs-16-10-2026-14-05.zip"
    assert result.archive_path == archive
    assert result.outcomes[-1].kind is StepKind.ARCHIVE
    assert len(result.outcomes) == 11
    assert len(_step_lines(result.log_path)) == 11

    with zipfile.ZipFile(archive) as zf:
        names = zf.namelist()
        log_copy = zf.read("BitLockerLogs-16-10-2026-14-05/CollectionLog.txt").decode("utf-8")
    assert "BitLockerLogs-16-10-2026-14-05/MDM_BitLocker.xml" in names
    assert "BitLockerLogs-16-10-2026-14-05/run.json" not in names
    assert log_copy.count("STEP: ") == 10

    markers = read_markers(result.log_path)
    assert markers[-1].operation == "ZIP archive"
    assert markers[-1].fields["output"] == str(archive)


@pytest.mark.integration
def test_archiver_failure_is_recorded(
    tmp_path: Path,
    make_toolset: Callable[..., Toolset],
) -> None:
    """Test an archiver reporting failure yields an archive failed step."""

    class RefusingArchiver:
        def archive(self, source_dir: Path, dest_path: Path) -> bool:
            return False

    result = _run(tmp_path, make_toolset(archiver=RefusingArchiver()), family="tpm", archive=True)

    outcome = result.outcomes[-1]
    assert outcome.reason is FailureReason.ARCHIVE_FAILED
    assert result.archive_path is None
    assert result.state is RunState.COMPLETED
    assert "STEP: ZIP archive failed; reason='archive failed'" in _step_lines(result.log_path)[-1]


@pytest.mark.integration
def test_privilege_checked_before_any_io(
    tmp_path: Path,
    make_toolset: Callable[..., Toolset],
) -> None:
    """Test a non-elevated run raises before creating anything."""
    base = tmp_path / "out"
    toolset = make_toolset(privilege=FakePrivilege(elevated=False))

    with pytest.raises(InsufficientPrivilegeError):
        _run(base, toolset)

    assert not base.exists()


@pytest.mark.integration
def test_same_minute_runs_never_share_a_root(
    tmp_path: Path,
    make_toolset: Callable[..., Toolset],
) -> None:
    """Test two runs with the same start minute write to distinct roots."""
    first = _run(tmp_path, make_toolset(), family="tpm")
    second = _run(tmp_path, make_toolset(), family="tpm")

    assert first.log_root != second.log_root
    assert second.log_root.name == f"{first.log_root.name}-2"
    assert len(_step_lines(first.log_path)) == 5
    assert len(_step_lines(second.log_path)) == 5


@pytest.mark.integration
def test_run_summary_matches_schema(
    tmp_path: Path,
    make_toolset: Callable[..., Toolset],
) -> None:
    """Test run.json of a mixed run validates and mirrors the outcomes."""
    toolset = make_toolset(commands=FakeCommands(failing=["manage-bde"]))
    result = _run(tmp_path, toolset, mdm=True, archive=True)

    with (_SCHEMAS_DIR / "run_summary.schema.json").open() as f:
        schema = json.load(f)
    summary = json.loads(result.summary_path.read_text(encoding="utf-8"))

    jsonschema.validate(instance=summary, schema=schema)
    assert summary["state"] == "completed"
    assert summary["family"] == "bitlocker"
    assert summary["archive_path"] == str(result.archive_path)
    assert [s["outcome"]["name"] for s in summary["steps"]] == [o.name for o in result.outcomes]
    assert summary["counts"] == {"success": 9, "failed": 2}


@pytest.mark.integration
def test_unreadable_artifact_does_not_stop_the_run(
    tmp_path: Path,
    make_toolset: Callable[..., Toolset],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Test an artifact locked while the summary hashes it is not fatal."""

    def _locked(path: Path) -> str:
        raise PermissionError(13, "file in use", str(path))

    monkeypatch.setattr("diagcollect.audit.summary.calculate_file_sha256", _locked)

    result = _run(tmp_path, make_toolset(), family="tpm")

    assert result.state is RunState.COMPLETED
    assert len(result.outcomes) == 5
    assert all(o.succeeded for o in result.outcomes)
    assert len(_step_lines(result.log_path)) == 5
    assert "Collection complete: 5/5 steps succeeded." in (
        result.log_path.read_text(encoding="utf-8")
    )

    summary = json.loads(result.summary_path.read_text(encoding="utf-8"))
    assert summary["counts"] == {"success": 5, "failed": 0}
    assert all(step["sha256"] is None for step in summary["steps"])


@pytest.mark.integration
def test_log_closed_when_a_step_escapes(
    tmp_path: Path,
    make_toolset: Callable[..., Toolset],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Test the activity log is closed even if the run is interrupted."""
    run = CollectionRun.start(
        CollectionConfig(family="tpm", output_path=tmp_path),
        toolset=make_toolset(),
        clock=_clock,
        echo=None,
    )

    def _interrupted(spec: object) -> None:
        raise KeyboardInterrupt

    monkeypatch.setattr(run, "run_step", _interrupted)

    with pytest.raises(KeyboardInterrupt):
        run.execute()

    assert run.log.closed


@pytest.mark.integration
def test_summary_start_matches_run_clock(
    tmp_path: Path,
    make_toolset: Callable[..., Toolset],
) -> None:
    """Test run.json records the same start moment that names the directory."""
    result = _run(tmp_path, make_toolset(), family="tpm")

    summary = json.loads(result.summary_path.read_text(encoding="utf-8"))
    assert summary["started_at"] == get_iso_timestamp(START)
    assert result.log_root.name == "TPMLogs-16-10-2026-14-05"
