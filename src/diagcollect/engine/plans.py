"""Fixed collection plans, one per artifact family.

Steps are declared here, in the order they run. Order only affects the
readability of the activity log; every step is independent of the others.
"""

from __future__ import annotations

from dataclasses import dataclass

from diagcollect.models.outcomes import StepKind

__all__ = ["StepSpec", "ReportSpec", "Family", "FAMILIES", "get_family"]

SYSTEM_DRIVE_PLACEHOLDER = "{system_drive}"


@dataclass(frozen=True)
class StepSpec:
    """Declaration of one collection step.

    Attributes
    ----------
    name : str
        Step label, used as the STEP marker operation.
    kind : StepKind
        FILE_QUERY, CHANNEL_EXPORT or REGISTRY_EXPORT.
    output_name : str
        Artifact file name inside the output root.
    command : tuple[str, ...]
        Command line for FILE_QUERY steps; ``{system_drive}`` is substituted.
    channels : tuple[str, ...]
        Candidate channels for CHANNEL_EXPORT steps, in fallback order.
    registry_key : str | None
        Key path for REGISTRY_EXPORT steps.
    """

    name: str
    kind: StepKind
    output_name: str
    command: tuple[str, ...] = ()
    channels: tuple[str, ...] = ()
    registry_key: str | None = None

    def __post_init__(self) -> None:
        """Check the kind-specific field is present."""
        if self.kind is StepKind.FILE_QUERY and not self.command:
            raise ValueError(f"File query step '{self.name}' needs a command")
        if self.kind is StepKind.CHANNEL_EXPORT and not self.channels:
            raise ValueError(f"Channel export step '{self.name}' needs at least one channel")
        if self.kind is StepKind.REGISTRY_EXPORT and not self.registry_key:
            raise ValueError(f"Registry export step '{self.name}' needs a registry key")
        if self.kind in (StepKind.REPORT_EXTRACTION, StepKind.ARCHIVE):
            raise ValueError(f"Step '{self.name}': {self.kind} steps are run by the orchestrator")


@dataclass(frozen=True)
class ReportSpec:
    """Nested report extraction settings for a family.

    Attributes
    ----------
    subdirectory : str
        Directory inside the output root the generator writes into.
    report_filename : str
        Generated report to filter, located case-insensitively.
    node_tag : str
        Tag of the candidate nodes.
    selector_field : str
        Child field compared against ``selector``.
    selector : str
        Value matched case-insensitively.
    output_name : str
        Filtered document file name inside the output root.
    root_tag : str
        Root tag of the filtered document.
    """

    subdirectory: str
    report_filename: str
    node_tag: str
    selector_field: str
    selector: str
    output_name: str
    root_tag: str


@dataclass(frozen=True)
class Family:
    """An artifact family: its directory prefix and fixed step plan."""

    key: str
    title: str
    dir_prefix: str
    steps: tuple[StepSpec, ...]
    report: ReportSpec | None = None

    @property
    def supports_mdm(self) -> bool:
        """Whether the family offers nested MDM report extraction."""
        return self.report is not None


_TPM_INFO = StepSpec(
    name="TPM device information",
    kind=StepKind.FILE_QUERY,
    output_name="TPM_DeviceInformation.txt",
    command=("tpmtool", "getdeviceinformation"),
)

_SYSTEM_CHANNEL = StepSpec(
    name="System",
    kind=StepKind.CHANNEL_EXPORT,
    output_name="System.evtx",
    channels=("System",),
)

BITLOCKER = Family(
    key="bitlocker",
    title="BitLocker",
    dir_prefix="BitLocker",
    steps=(
        StepSpec(
            name="BitLocker status",
            kind=StepKind.FILE_QUERY,
            output_name="BitLocker_Status.txt",
            command=("manage-bde", "-status"),
        ),
        StepSpec(
            name="BitLocker protectors",
            kind=StepKind.FILE_QUERY,
            output_name="BitLocker_Protectors.txt",
            command=("manage-bde", "-protectors", "-get", SYSTEM_DRIVE_PLACEHOLDER),
        ),
        _TPM_INFO,
        StepSpec(
            name="BitLocker Management",
            kind=StepKind.CHANNEL_EXPORT,
            output_name="BitLocker-Management.evtx",
            channels=(
                "Microsoft-Windows-BitLocker/BitLocker Management",
                "Microsoft-Windows-BitLocker-DrivePreparationTool/Admin",
            ),
        ),
        StepSpec(
            name="BitLocker Operational",
            kind=StepKind.CHANNEL_EXPORT,
            output_name="BitLocker-Operational.evtx",
            channels=(
                "Microsoft-Windows-BitLocker/BitLocker Operational",
                "Microsoft-Windows-BitLocker-DrivePreparationTool/Operational",
            ),
        ),
        StepSpec(
            name="BitLocker API Management",
            kind=StepKind.CHANNEL_EXPORT,
            output_name="BitLocker-API-Management.evtx",
            channels=("Microsoft-Windows-BitLocker-API/Management",),
        ),
        _SYSTEM_CHANNEL,
        StepSpec(
            name="FVE policy registry",
            kind=StepKind.REGISTRY_EXPORT,
            output_name="FVE_Policies.reg",
            registry_key=r"HKLM\SOFTWARE\Policies\Microsoft\FVE",
        ),
        StepSpec(
            name="BitLocker state registry",
            kind=StepKind.REGISTRY_EXPORT,
            output_name="BitLocker_State.reg",
            registry_key=r"HKLM\SYSTEM\CurrentControlSet\Control\BitLockerStatus",
        ),
    ),
    report=ReportSpec(
        subdirectory="MDM",
        report_filename="MDMDiagReport.xml",
        node_tag="Area",
        selector_field="PolicyAreaName",
        selector="BitLocker",
        output_name="MDM_BitLocker.xml",
        root_tag="MDMBitLockerPolicies",
    ),
)

TPM = Family(
    key="tpm",
    title="TPM",
    dir_prefix="TPM",
    steps=(
        _TPM_INFO,
        StepSpec(
            name="TPM WMI Admin",
            kind=StepKind.CHANNEL_EXPORT,
            output_name="TPM-WMI-Admin.evtx",
            channels=(
                "Microsoft-Windows-TPM-WMI/Admin",
                "Microsoft-Windows-TPM-WMI",
            ),
        ),
        _SYSTEM_CHANNEL,
        StepSpec(
            name="TPM policy registry",
            kind=StepKind.REGISTRY_EXPORT,
            output_name="TPM_Policies.reg",
            registry_key=r"HKLM\SOFTWARE\Policies\Microsoft\TPM",
        ),
        StepSpec(
            name="TPM service registry",
            kind=StepKind.REGISTRY_EXPORT,
            output_name="TPM_Service.reg",
            registry_key=r"HKLM\SYSTEM\CurrentControlSet\Services\TPM",
        ),
    ),
)

FAMILIES: dict[str, Family] = {family.key: family for family in (BITLOCKER, TPM)}


def get_family(key: str) -> Family:
    """Look up a family by key.

    Raises
    ------
    ValueError
        If the family is unknown.
    """
    try:
        return FAMILIES[key]
    except KeyError:
        raise ValueError(
            f"Unknown artifact family '{key}'. Available: {', '.join(sorted(FAMILIES))}"
        ) from None
