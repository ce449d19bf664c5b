"""Batch Execution Domain Value Objects.

Immutable types that carry no identity. Equality is structural.
All value objects use frozen dataclasses with __post_init__ validation.
"""
from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, List


class BatchKind(str, Enum):
    """Which write a batch performs.

    Values:
        CREATE: Insert new records, with ``${name}`` binding between steps
        UPDATE: Modify records addressed by a known identifier
    """
    CREATE = "create"
    UPDATE = "update"


class FailurePolicy(str, Enum):
    """Policy that controls what happens when an operation fails.

    Values:
        STOP: Abort the batch after the first failed operation
        CONTINUE: Record the failure and move on to the next operation
    """
    STOP = "stop"
    CONTINUE = "continue"

    @classmethod
    def for_create(cls, transactional: bool = True) -> FailurePolicy:
        """Creates form a dependent chain and stop by default."""
        return cls.STOP if transactional else cls.CONTINUE

    @classmethod
    def for_update(cls, stop_on_error: bool = False) -> FailurePolicy:
        """Updates are independent edits and continue by default."""
        return cls.STOP if stop_on_error else cls.CONTINUE


@dataclass(frozen=True)
class BatchId:
    """Unique identifier for a batch execution.

    Format: ``batch_<12 hex chars>`` (e.g., ``batch_a1b2c3d4e5f6``).

    Invariants:
        - value must not be empty
    """
    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("BatchId cannot be empty")

    @classmethod
    def generate(cls) -> BatchId:
        """Generate a new unique BatchId."""
        return cls(value=f"batch_{uuid.uuid4().hex[:12]}")


@dataclass(frozen=True)
class Placeholder:
    """A ``${name}`` reference to an identifier saved by an earlier operation.

    Attributes:
        name: The ``save_as`` key being referenced
        raw: The original token (e.g., ``${parent}``)

    Invariants:
        - name must not be empty

    Examples:
        >>> refs = Placeholder.find_all("${parent}/${child}")
        >>> [r.name for r in refs]
        ['parent', 'child']
    """
    name: str
    raw: str

    PATTERN: ClassVar[re.Pattern] = re.compile(r"\$\{([^{}]+)\}")

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("Placeholder name cannot be empty")

    @classmethod
    def find_all(cls, text: str) -> List[Placeholder]:
        """Find all ``${name}`` tokens in the given text, in order."""
        return [
            cls(name=m.group(1).strip(), raw=m.group(0))
            for m in cls.PATTERN.finditer(text)
            if m.group(1).strip()
        ]
