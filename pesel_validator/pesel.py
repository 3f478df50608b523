"""
PESEL Validator - Polish National Identification Number
Version: 0.1.0

PESEL (Powszechny Elektroniczny System Ewidencji Ludności - Universal
Electronic System for Registration of the Population) is an 11-digit number
assigned to every Polish resident.

PESEL format: YYMMDDZZZXC
- YY: Year of birth (last 2 digits)
- MM: Month of birth with century encoding (month // 20 selects the century)
- DD: Day of birth
- ZZZ: Serial number
- X: Sex digit (odd=male, even=female)
- C: Checksum digit

Validation runs four stages, each gating the next:
1. Length must be exactly 11 characters
2. Every character must be an ASCII digit
3. The encoded date must be a real Gregorian calendar date
4. Weighted digit sum plus the last digit must be divisible by 10

References:
- Ministry of Digital Affairs: https://www.gov.pl/web/gov/czym-jest-numer-pesel
"""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional
import logging

from .exceptions import InvalidPeselError

logger = logging.getLogger(__name__)

PESEL_LENGTH = 11
ASCII_DIGITS = frozenset("0123456789")

# Weights for digits d0..d9
CHECKSUM_WEIGHTS = (1, 3, 7, 9, 1, 3, 7, 9, 1, 3)

# month // 20 -> century base
CENTURY_BASES = {
    0: 1900,
    1: 2000,
    2: 2100,
    3: 2200,
    4: 1800,
}

SEX_DIGIT_INDEX = 9


def _to_digits(candidate) -> Optional[List[int]]:
    """Return the digits of a well-formed candidate, or None (stages 1 and 2)."""
    if not isinstance(candidate, str):
        logger.debug(f"validate rejected invalid type {type(candidate).__name__}")
        return None

    if len(candidate) != PESEL_LENGTH:
        logger.debug(f"validate rejected wrong length: {len(candidate)} characters")
        return None

    if not ASCII_DIGITS.issuperset(candidate):
        logger.debug("validate rejected non-digit characters")
        return None

    return [int(ch) for ch in candidate]


def _decode_birth_date(digits: List[int]) -> Optional[date]:
    """
    Decode the birth date encoded in the first six digits.

    Month encoding for century:
    - 01-12: 1900-1999
    - 21-32: 2000-2099
    - 41-52: 2100-2199
    - 61-72: 2200-2299
    - 81-92: 1800-1899

    Returns:
        The decoded date, or None if it is not a real calendar date
    """
    yy = digits[0] * 10 + digits[1]
    mm = digits[2] * 10 + digits[3]
    dd = digits[4] * 10 + digits[5]

    century = CENTURY_BASES.get(mm // 20)
    if century is None:
        logger.debug(f"validate rejected unknown century band for month field {mm:02d}")
        return None

    try:
        return date(century + yy, mm % 20, dd)
    except ValueError as e:
        logger.debug(f"validate rejected invalid date: {e}")
        return None


def _checksum_matches(digits: List[int]) -> bool:
    total = sum(d * w for d, w in zip(digits[:10], CHECKSUM_WEIGHTS)) + digits[10]
    if total % 10 != 0:
        logger.debug(f"validate rejected checksum: weighted sum {total} not divisible by 10")
        return False
    return True


def validate(candidate) -> bool:
    """
    Validate a Polish PESEL number.

    The candidate is taken as-is: separators, surrounding whitespace and
    non-ASCII digits all make it invalid. Never raises for bad input.

    Args:
        candidate: Value to validate (normally an 11-character string)

    Returns:
        True if all four validation stages pass, False otherwise

    Examples:
        >>> validate("02070803628")
        True
        >>> validate("02070803629")
        False  # Wrong checksum digit
        >>> validate("02130803629")
        False  # Month 13 does not exist
        >>> validate("123")
        False  # Wrong length
    """
    digits = _to_digits(candidate)
    if digits is None:
        return False

    if _decode_birth_date(digits) is None:
        return False

    return _checksum_matches(digits)


@dataclass(frozen=True)
class ValidatedPesel:
    """
    A PESEL number that passed validation.

    Construction runs :func:`validate` and raises :class:`InvalidPeselError`
    on failure, so every instance holds a valid number. Instances are
    immutable and hashable.
    """

    value: str

    def __post_init__(self):
        if not validate(self.value):
            raise InvalidPeselError(self.value)

    def __str__(self) -> str:
        return self.value

    @property
    def birth_date(self) -> date:
        """Birth date decoded with the century encoded in the month field."""
        return _decode_birth_date([int(ch) for ch in self.value])

    @property
    def sex(self) -> str:
        """``"male"`` for an odd sex digit, ``"female"`` for an even one."""
        return "male" if int(self.value[SEX_DIGIT_INDEX]) % 2 == 1 else "female"


def parse(candidate) -> ValidatedPesel:
    """
    Convert a candidate string into a :class:`ValidatedPesel`.

    The original string is wrapped unchanged.

    Raises:
        InvalidPeselError: If the candidate fails validation
    """
    return ValidatedPesel(candidate)


def checksum_pesel(text: str) -> bool:
    """Presidio validator wrapper for PESEL validation."""
    return validate(text)


# ============================================================================
# Testing Helpers
# ============================================================================

def generate_pesel_checksum(first_10_digits: str) -> str:
    """
    Generate a PESEL with a matching checksum digit from its first 10 digits.

    Only the checksum is computed; the encoded date is not checked.

    Args:
        first_10_digits: String of 10 ASCII digits (YYMMDDZZZX)

    Returns:
        Complete 11-digit PESEL string

    Example:
        >>> generate_pesel_checksum("9203210015")
        "92032100157"
    """
    if (
        not isinstance(first_10_digits, str)
        or len(first_10_digits) != 10
        or not ASCII_DIGITS.issuperset(first_10_digits)
    ):
        raise ValueError("Must provide exactly 10 digits")

    weighted_sum = sum(int(d) * w for d, w in zip(first_10_digits, CHECKSUM_WEIGHTS))
    checksum = (10 - (weighted_sum % 10)) % 10

    return first_10_digits + str(checksum)


__all__ = [
    "validate",
    "parse",
    "ValidatedPesel",
    "checksum_pesel",
    "generate_pesel_checksum",
    "CHECKSUM_WEIGHTS",
    "CENTURY_BASES",
    "PESEL_LENGTH",
]
