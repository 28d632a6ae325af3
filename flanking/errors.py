"""
Error taxonomy for the flanking extension engine.

Only conditions that must stop a run are exceptions. Unknown sequences and
conflicting orientation markers are warnings: they are logged and counted in
ExtensionStats instead.
"""

from typing import List, Sequence, Tuple


class FlankExtensionError(Exception):
    """Base class for fatal extension errors"""


class MalformedIdentifierError(FlankExtensionError, ValueError):
    """A hit line whose query identifier does not encode id/start/end/orientation."""

    def __init__(self, identifier: str, line_number: int = 0):
        self.identifier = identifier
        self.line_number = line_number
        location = f"line {line_number}: " if line_number else ""
        super().__init__(
            f"{location}identifier '{identifier}' does not match "
            f"id_start_end[_R] or id:start-end[_R]"
        )


class ExtractionMismatchError(FlankExtensionError, KeyError):
    """The extracted sequences do not cover the requested merged ranges."""

    def __init__(self, missing: Sequence[Tuple[str, int, int]], detail: str = ""):
        self.missing: List[Tuple[str, int, int]] = list(missing)
        coords = ", ".join(f"{sid}:{start}-{end}" for sid, start, end in self.missing)
        message = detail or f"no extracted sequence for {len(self.missing)} range(s)"
        if coords:
            message = f"{message}: {coords}"
        super().__init__(message)

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])
