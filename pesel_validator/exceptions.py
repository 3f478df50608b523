"""
Exception hierarchy for the PESEL validator package.
"""


class PeselError(Exception):
    """Base exception for all PESEL validator errors."""


class InvalidPeselError(PeselError, ValueError):
    """Raised when a candidate string is not a valid PESEL number."""

    def __init__(self, candidate) -> None:
        self.candidate = candidate
        super().__init__(f"Invalid PESEL: {candidate!r}")
