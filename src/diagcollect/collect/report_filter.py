"""Filtered extraction from tree-shaped diagnostic reports.

The source report is produced by a third-party generator whose schema is
not versioned, so this module only relies on two things: nodes can be
enumerated by tag, and each node has a child field with string content.
Matching is always case-insensitive because the generator's casing varies.

Three empty-handed results are kept distinct because operators fix them
differently: the source document is missing, the document does not parse,
or it parses but nothing matches.
"""

from __future__ import annotations

import copy
import xml.etree.ElementTree as ET
from collections.abc import Callable
from pathlib import Path
from typing import NamedTuple

from diagcollect.models.outcomes import FailureReason

__all__ = [
    "FilterResult",
    "Selector",
    "extract_matching",
    "extract_report_file",
    "locate_report",
]

Selector = str | Callable[[str], bool]

DEFAULT_ROOT_TAG = "FilteredReport"


class FilterResult(NamedTuple):
    """Result of a report extraction.

    Attributes
    ----------
    document : ET.Element | None
        Independently rooted output document, None if nothing was parsed.
    count : int
        Number of matching nodes copied into ``document``.
    reason : FailureReason | None
        Why nothing was extracted, None when ``count > 0``.
    error : str | None
        Parser message for ``parse exception`` results.
    """

    document: ET.Element | None
    count: int
    reason: FailureReason | None = None
    error: str | None = None


def _normalise(text: str | None) -> str:
    return (text or "").strip().casefold()


def _as_predicate(selector: Selector) -> Callable[[str], bool]:
    if callable(selector):
        return selector
    wanted = _normalise(selector)
    return lambda text: _normalise(text) == wanted


def extract_matching(
    document: ET.Element,
    node_tag: str,
    selector_field: str,
    selector: Selector,
    *,
    root_tag: str = DEFAULT_ROOT_TAG,
) -> FilterResult:
    """Copy every ``node_tag`` node whose selector field matches.

    Parameters
    ----------
    document : ET.Element
        Root of the parsed source report.
    node_tag : str
        Tag of the candidate nodes, searched at any depth.
    selector_field : str
        Tag of the direct child whose text is compared.
    selector : Selector
        Value compared case-insensitively, or a predicate on the field text.
    root_tag : str, optional
        Tag of the new output root.

    Returns
    -------
    FilterResult
        Matches deep-copied in document order. Zero matches yields an
        empty document with reason ``no matching nodes``.
    """
    predicate = _as_predicate(selector)
    output = ET.Element(root_tag)

    for node in document.iter(node_tag):
        field = node.find(selector_field)
        if field is None:
            continue
        if predicate(field.text or ""):
            output.append(copy.deepcopy(node))

    count = len(output)
    if count == 0:
        return FilterResult(document=output, count=0, reason=FailureReason.NO_MATCHING_NODES)
    return FilterResult(document=output, count=count)


def locate_report(directory: Path, filename: str) -> Path | None:
    """Find a generated report below ``directory`` by case-insensitive name.

    Parameters
    ----------
    directory : Path
        Directory the generator wrote into.
    filename : str
        Expected report file name.

    Returns
    -------
    Path | None
        First match in sorted order, or None.
    """
    if not directory.is_dir():
        return None

    wanted = filename.casefold()
    for candidate in sorted(directory.rglob("*")):
        if candidate.is_file() and candidate.name.casefold() == wanted:
            return candidate
    return None


def extract_report_file(
    source_path: Path | None,
    output_path: Path,
    node_tag: str,
    selector_field: str,
    selector: Selector,
    *,
    root_tag: str = DEFAULT_ROOT_TAG,
) -> FilterResult:
    """Parse a report file, filter it, and write the result.

    Parameters
    ----------
    source_path : Path | None
        Source report; None or a missing file is a missing-input result.
    output_path : Path
        Where the filtered document is written (also on zero matches).
    node_tag : str
        Tag of the candidate nodes.
    selector_field : str
        Tag of the field compared against ``selector``.
    selector : Selector
        Value or predicate.
    root_tag : str, optional
        Tag of the output root.

    Returns
    -------
    FilterResult
        Extraction result; parse problems are reported, not raised.
    """
    if source_path is None or not source_path.is_file():
        return FilterResult(document=None, count=0, reason=FailureReason.SOURCE_DOCUMENT_NOT_FOUND)

    try:
        tree = ET.parse(source_path)
    except ET.ParseError as e:
        return FilterResult(
            document=None,
            count=0,
            reason=FailureReason.PARSE_EXCEPTION,
            error=str(e),
        )

    result = extract_matching(
        tree.getroot(),
        node_tag,
        selector_field,
        selector,
        root_tag=root_tag,
    )

    document = result.document if result.document is not None else ET.Element(root_tag)
    ET.indent(document)
    ET.ElementTree(document).write(output_path, encoding="utf-8", xml_declaration=True)

    return result
