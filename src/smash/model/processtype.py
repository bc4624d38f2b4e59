"""ProcessType enum: which kind of interaction last touched a particle."""

from __future__ import annotations

from enum import IntEnum


class ProcessType(IntEnum):
    """Kinds of processes an action can represent.

    Values follow the numbering used in the transport output formats.
    """

    NONE = 0
    ELASTIC = 1
    TWO_TO_ONE = 2
    TWO_TO_TWO = 3
    DECAY = 5
    WALL = 6
    STRING_SOFT = 41
    STRING_HARD = 46


def is_string_soft_process(process_type: ProcessType) -> bool:
    return process_type == ProcessType.STRING_SOFT


def keeps_identity(process_type: ProcessType) -> bool:
    """Whether a committed process updates particles in place instead of replacing them."""
    return process_type in (ProcessType.ELASTIC, ProcessType.WALL)
