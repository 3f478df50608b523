"""
PESEL Validator Package
Version: 0.1.0

Validation of Polish national identification numbers (PESEL) and their
detection in free text.
"""

from .exceptions import InvalidPeselError, PeselError
from .pesel import (
    ValidatedPesel,
    checksum_pesel,
    generate_pesel_checksum,
    parse,
    validate,
)
from .recognizer import (
    ValidatedPatternRecognizer,
    find_pesels,
    load_pesel_recognizers,
    load_recognizer_config,
)

__all__ = [
    # Core
    "validate",
    "parse",
    "ValidatedPesel",
    "InvalidPeselError",
    "PeselError",
    # Presidio integration / text scanning
    "checksum_pesel",
    "ValidatedPatternRecognizer",
    "find_pesels",
    "load_pesel_recognizers",
    "load_recognizer_config",
    # Helpers
    "generate_pesel_checksum",
]

__version__ = "0.1.0"
