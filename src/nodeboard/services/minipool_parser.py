"""Parser for the backend's free-text minipool report.

The report is a sequence of blocks separated by blank lines::

    2 Staking minipool(s):

    Address:        0xabc...
    Status:         Staking
    Node deposit:   16.000000 ETH

    Address:        0xdef...
    ...

    <trailer>

    <trailer>

Section headers ("N Staking minipool(s)", "N Prelaunch minipool(s)",
"... finalized minipool(s)") set sticky flags for the records after them.
The last two blocks are always boilerplate.
"""

import logging
import re
from typing import Any, Iterable, List, Optional, Tuple

from nodeboard.models.pool import MinipoolSummary, PoolRecord
from nodeboard.utils.amounts import leading_number

logger = logging.getLogger("nodeboard.minipools")

BLOCK_SEPARATOR = "\n\n"
TRAILING_BLOCKS = 2
FINALIZED_MARKERS = ("finalized minipool", "Staking minipool")
PRELAUNCH_MARKERS = ("Prelaunch minipool",)
# a header only counts when this many blocks follow it
HEADER_LOOKAHEAD = 2

_WHITESPACE = re.compile(r"\s+")


class TextParseAnomaly(Exception):
    """The report did not have the expected block structure."""


def normalize_label(label: str) -> str:
    """``" Node deposit "`` -> ``"Node-deposit"``."""
    return _WHITESPACE.sub("-", label.strip())


def split_blocks(text: str) -> List[str]:
    """Split the report into blocks and drop the trailing boilerplate."""
    blocks = text.replace("\r\n", "\n").split(BLOCK_SEPARATOR)
    return blocks[:-TRAILING_BLOCKS] if len(blocks) > TRAILING_BLOCKS else []


def _header_flags(block: str) -> Optional[Tuple[bool, bool]]:
    """Return (finalized, prelaunch) if the block looks like a section header."""
    if any(marker in block for marker in FINALIZED_MARKERS):
        return True, False
    if any(marker in block for marker in PRELAUNCH_MARKERS):
        return False, True
    return None


def parse_record_block(block: str) -> dict:
    """Parse ``Label: value`` lines into a field mapping.

    Each line is split on its first colon only, so values that contain
    colons themselves (``Created: 2024-01-02 12:30:00``) are kept whole.
    Lines without a colon or with an empty label are skipped.
    """
    data = {}
    for line in block.split("\n"):
        label, sep, value = line.partition(":")
        if not sep:
            continue
        key = normalize_label(label)
        if key:
            data[key] = value.strip()
    return data


def parse_minipool_report(text: str) -> List[PoolRecord]:
    """Parse a minipool report into ordered pool records.

    Args:
        text: Raw report text

    Returns:
        Records in report order, flagged from their section header

    Raises:
        TextParseAnomaly: If the input is not text
    """
    if not isinstance(text, str):
        raise TextParseAnomaly(f"Expected report text, got {type(text).__name__}")

    blocks = split_blocks(text)
    records: List[PoolRecord] = []
    pending_finalized = False
    pending_prelaunch = False

    i = 0
    while i < len(blocks):
        block = blocks[i]

        # a header without enough blocks after it falls through to record parsing
        flags = _header_flags(block)
        if flags is not None and i + HEADER_LOOKAHEAD < len(blocks):
            pending_finalized, pending_prelaunch = flags
            i += 1
            continue

        if block.strip():
            data = parse_record_block(block)
            if data:
                records.append(
                    PoolRecord(
                        data=data,
                        is_finalized=pending_finalized,
                        is_prelaunch=pending_prelaunch,
                    )
                )
            else:
                logger.debug(f"Skipping block without fields: {block[:40]!r}")
        i += 1

    return records


def load_minipool_records(result: Any) -> List[PoolRecord]:
    """Tolerant entry point for the /pools-fetch result.

    Never raises: a report that cannot be parsed means "no pools available".
    """
    try:
        if not isinstance(result, dict):
            raise TextParseAnomaly(f"Unexpected minipool result type: {type(result).__name__}")
        report = result.get("pools")
        if report is None or report == "":
            return []
        return parse_minipool_report(report)
    except Exception as e:
        logger.warning(f"Failed to parse minipool report: {e}", exc_info=True)
        return []


def serialize_minipool_report(records: Iterable[PoolRecord]) -> str:
    """Render records as a canonical report that parses back to the same records.

    Raises:
        ValueError: If an unflagged record follows a flagged section
    """
    records = list(records)
    sections: List[Tuple[Tuple[bool, bool], List[PoolRecord]]] = []
    for record in records:
        flags = (record.is_finalized, record.is_prelaunch)
        if sections and sections[-1][0] == flags:
            sections[-1][1].append(record)
        else:
            sections.append((flags, [record]))

    blocks: List[str] = []
    for index, (flags, section) in enumerate(sections):
        if flags == (False, False):
            if index > 0:
                raise ValueError("Active records must come before any section header")
        elif flags[0]:
            blocks.append(f"{len(section)} Staking minipool(s):")
        else:
            blocks.append(f"{len(section)} Prelaunch minipool(s):")
        for record in section:
            blocks.append("\n".join(f"{key}: {value}" for key, value in record.data.items()))

    # empty padding block so a final one-record section still has its header lookahead
    blocks.append("")
    blocks.extend(["Report generated by nodeboard.", "End of report."])
    return BLOCK_SEPARATOR.join(blocks)


def summarize_minipools(records: Iterable[PoolRecord]) -> MinipoolSummary:
    """Totals for the node card (borrowed ETH, staked ETH, counts)."""
    summary = MinipoolSummary()
    for record in records:
        summary.count += 1
        if record.is_finalized:
            summary.finalized += 1
        elif record.is_prelaunch:
            summary.prelaunch += 1
        else:
            summary.active += 1
        summary.total_borrowed += leading_number(record.get("RP-deposit")) or 0.0
        summary.total_staked += leading_number(record.get("Node-deposit")) or 0.0
    return summary
