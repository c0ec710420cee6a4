# blockbot/errors.py
"""
Error types for the blockbot pipeline.

Two disjoint error domains exist:

Structural (compile-time)
    Produced by the linearizer when the chain reachable from ``Begin`` is
    malformed.  These are *values* (``StructuralError``) handed back to the
    caller in place of a program; they are never raised.

Input / infrastructure
    Produced while turning text into a grid world or while the CLI wires
    things together.  These are exceptions rooted at ``BlockbotError``.

Runtime has no error kind at all: illegal moves are no-ops and the only
terminal outcomes are ``RunState.WON`` / ``RunState.LOST``.

Error codes follow the pattern ``BBOT-NNNN``:

  - 1000-1999: structural (compile) errors
  - 2000-2999: map format errors
  - 9000-9999: CLI / infrastructure errors
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from typing import Any, Dict, Optional


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR CLASSIFICATION
# ═══════════════════════════════════════════════════════════════════════════════

@unique
class ErrorPhase(Enum):
    """Pipeline stage where the error occurred."""

    COMPILE = "compile"
    MAP = "map"
    CLI = "cli"


@unique
class ErrorKind(Enum):
    """Structural problems the linearizer can report."""

    INCOMPLETE_CONDITION = "IncompleteCondition"
    UNMATCHED_END = "UnmatchedEnd"
    MISSING_END = "MissingEnd"


class ErrorCode:
    """
    Structured error code.

    Codes follow the pattern PREFIX-NNNN; the prefix is always ``BBOT``.
    """

    __slots__ = ("prefix", "number", "phase")

    def __init__(self, prefix: str, number: int, phase: ErrorPhase) -> None:
        self.prefix = prefix
        self.number = number
        self.phase = phase

    @property
    def code(self) -> str:
        """Get the full error code string."""
        return f"{self.prefix}-{self.number:04d}"

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"ErrorCode({self.code!r}, {self.phase.name})"

    def __hash__(self) -> int:
        return hash((self.prefix, self.number))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorCode):
            return self.prefix == other.prefix and self.number == other.number
        if isinstance(other, str):
            return self.code == other
        return False


class BlockbotErrorCodes:
    """Predefined error codes."""

    # ═══════════════════════════════════════════════════════════════════════
    # STRUCTURAL ERRORS (1000-1999)
    # ═══════════════════════════════════════════════════════════════════════

    INCOMPLETE_CONDITION = ErrorCode("BBOT", 1001, ErrorPhase.COMPILE)
    UNMATCHED_END = ErrorCode("BBOT", 1002, ErrorPhase.COMPILE)
    MISSING_END = ErrorCode("BBOT", 1003, ErrorPhase.COMPILE)

    # ═══════════════════════════════════════════════════════════════════════
    # MAP FORMAT ERRORS (2000-2999)
    # ═══════════════════════════════════════════════════════════════════════

    MAP_SYNTAX = ErrorCode("BBOT", 2001, ErrorPhase.MAP)
    RAGGED_MAP = ErrorCode("BBOT", 2002, ErrorPhase.MAP)
    MISSING_START = ErrorCode("BBOT", 2003, ErrorPhase.MAP)
    EMPTY_MAP = ErrorCode("BBOT", 2004, ErrorPhase.MAP)

    # ═══════════════════════════════════════════════════════════════════════
    # CLI ERRORS (9000-9999)
    # ═══════════════════════════════════════════════════════════════════════

    UNKNOWN_BLOCK_WORD = ErrorCode("BBOT", 9001, ErrorPhase.CLI)


_CODE_FOR_KIND: Dict[ErrorKind, ErrorCode] = {
    ErrorKind.INCOMPLETE_CONDITION: BlockbotErrorCodes.INCOMPLETE_CONDITION,
    ErrorKind.UNMATCHED_END: BlockbotErrorCodes.UNMATCHED_END,
    ErrorKind.MISSING_END: BlockbotErrorCodes.MISSING_END,
}


# ═══════════════════════════════════════════════════════════════════════════════
# STRUCTURAL ERROR VALUE
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StructuralError:
    """
    A compile failure pinned to the block that caused it.

    Presentation code highlights ``node_id`` and prints ``message`` next to
    it.  ``as_triple()`` is the ``(nodeId, ErrorKind, message)`` form.
    """

    node_id: int
    kind: ErrorKind
    message: str

    @property
    def code(self) -> ErrorCode:
        return _CODE_FOR_KIND[self.kind]

    def as_triple(self) -> tuple:
        return (self.node_id, self.kind, self.message)

    def to_json(self) -> Dict[str, Any]:
        return {
            "code": self.code.code,
            "kind": self.kind.value,
            "node": self.node_id,
            "message": self.message,
        }

    def __str__(self) -> str:
        return f"block {self.node_id}: error: {self.message} [{self.code}]"


# ═══════════════════════════════════════════════════════════════════════════════
# EXCEPTION CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class BlockbotError(Exception):
    """Base class for every exception raised by blockbot."""

    def __init__(self, message: str, code: Optional[ErrorCode] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        if self.code is not None:
            return f"{self.message} [{self.code}]"
        return self.message


class MapFormatError(BlockbotError):
    """A grid description could not be turned into a grid world."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = BlockbotErrorCodes.MAP_SYNTAX,
        line: int = 0,
        column: int = 0,
    ) -> None:
        super().__init__(message, code)
        self.line = line
        self.column = column

    def __str__(self) -> str:
        where = ""
        if self.line > 0:
            where = f"{self.line}:{self.column}: " if self.column > 0 else f"{self.line}: "
        return f"{where}{super().__str__()}"


class BlockWordError(BlockbotError):
    """A command-line block word does not name a block."""

    def __init__(self, word: str) -> None:
        super().__init__(
            f"Unknown block word {word!r}", BlockbotErrorCodes.UNKNOWN_BLOCK_WORD
        )
        self.word = word
