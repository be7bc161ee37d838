"""Abstract base formatter and output container.

WHY: Every export format consumes the same SyncDocument but produces
different file content. A shared interface lets the CLI loop over any
selection of formats without knowing their details.

HOW: BaseFormatter is an ABC with a ``name`` property and a ``format()``
method. FormatterOutput bundles a file suffix with its content and MIME
type.

RULES:
- ``format()`` returns a list, even for a single file
- ``suffix`` starts with a hyphen, e.g. ``"-timeline.json"``
- The caller prepends the commentary filename stem
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Union

from speech_sync.core.ir import SyncDocument


@dataclass
class FormatterOutput:
    """One output file produced by a formatter.

    Attributes:
        suffix: Appended to the source stem,
                e.g. ``"-timeline.txt"`` → ``"report-timeline.txt"``.
        content: File content (text, or bytes for binary formats).
        media_type: MIME type, e.g. ``"application/json"``.
    """

    suffix: str
    content: Union[str, bytes]
    media_type: str


class BaseFormatter(ABC):
    """Abstract base for all timeline exporters.

    To add a new export format:
    1. Create a new file in formatters/
    2. Subclass BaseFormatter
    3. Implement format() and name
    4. Register in FORMATTERS dict in formatters/__init__.py
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable format name, e.g. 'Timeline JSON'."""

    @abstractmethod
    def format(self, document: SyncDocument) -> List[FormatterOutput]:
        """Render a SyncDocument into one or more output files."""
