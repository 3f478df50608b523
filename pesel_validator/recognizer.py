"""
PESEL detection in free text, with Presidio integration.

Checksum and date validation run DURING pattern matching, so numbers that
merely look like a PESEL never reach the results.

Recognizers are described in YAML (``config/recognizers.yaml`` by default,
overridable with the ``PESEL_RECOGNIZER_CONFIG`` environment variable). Every
configured pattern is screened for ReDoS risk before it is compiled.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import regex  # Use regex module for timeout support (ReDoS protection)
import yaml
from presidio_analyzer import Pattern, PatternRecognizer

from .pesel import ValidatedPesel, checksum_pesel, validate

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config" / "recognizers.yaml"
CONFIG_PATH_ENV = "PESEL_RECOGNIZER_CONFIG"

DEFAULT_ENTITY = "PL_PESEL"
DEFAULT_LANGUAGE = "pl"

DEFAULT_REGEX_TIMEOUT = 0.2  # seconds
MAX_PATTERN_LENGTH = 500
REDOS_PROBE = "1" * 64 + "!"

# ASCII digits only; \d would also match other scripts
_PESEL_CANDIDATE_REGEX = regex.compile(r"(?<![0-9])[0-9]{11}(?![0-9])")
_NESTED_QUANTIFIER_REGEX = regex.compile(r"\([^)]*[*+]\)[*+]")


def find_pesels(text: str, timeout: float = DEFAULT_REGEX_TIMEOUT) -> List[ValidatedPesel]:
    """
    Find every valid PESEL number in ``text``.

    Candidates are 11-digit runs not adjacent to other digits; each one is
    validated and only the valid ones are returned, in order of appearance.

    Raises:
        TypeError: If text is not a string
        TimeoutError: If scanning exceeds ``timeout`` seconds
    """
    if not isinstance(text, str):
        raise TypeError(f"Expected str, got {type(text).__name__}")

    found = []
    try:
        for match in _PESEL_CANDIDATE_REGEX.finditer(text, timeout=timeout):
            candidate = match.group()
            if validate(candidate):
                found.append(ValidatedPesel(candidate))
            else:
                logger.debug(f"find_pesels skipped invalid candidate at offset {match.start()}")
    except TimeoutError:
        logger.warning(f"find_pesels timed out after {timeout}s on {len(text)} chars")
        raise
    return found


class ValidatedPatternRecognizer(PatternRecognizer):
    """
    Pattern recognizer with integrated PESEL validation.

    Presidio calls :meth:`validate_result` before scoring: ``True`` raises
    the match score to the maximum, ``False`` drops it to zero so the match
    is discarded.

    Args:
        validator_func: Callable taking the matched text and returning bool
        **kwargs: Passed to :class:`presidio_analyzer.PatternRecognizer`

    Example:
        >>> recognizer = ValidatedPatternRecognizer(
        ...     supported_entity="PL_PESEL",
        ...     name="PESEL Pattern Recognizer",
        ...     patterns=[Pattern("pesel", r"\\b[0-9]{11}\\b", 0.5)],
        ...     validator_func=checksum_pesel,
        ... )
    """

    def __init__(self, validator_func: Optional[Callable[[str], bool]] = None, **kwargs):
        super().__init__(**kwargs)
        self.validator_func = validator_func

    @staticmethod
    def normalize(pattern_text: str) -> str:
        """Strip the separators allowed by grouped patterns (spaces, hyphens)."""
        return pattern_text.replace("-", "").replace(" ", "")

    def _execute_validator(self, pattern_text: str, context: str = "VALIDATE") -> bool:
        validation_text = self.normalize(pattern_text)
        is_valid = self.validator_func(validation_text)
        logger.info(f"[{context}] {self.name}: result={is_valid}")

        if not is_valid:
            logger.info(f"[REJECTED] {self.name}: match failed validation")

        return is_valid

    def validate_result(self, pattern_text: str) -> Optional[bool]:
        """
        Called BEFORE scoring.

        Returns:
            None (use pattern score), True (boost to 1.0), or False (set to 0.0)
        """
        if self.validator_func:
            return self._execute_validator(pattern_text, "VALIDATE")
        return None

    def invalidate_result(self, pattern_text: str) -> Optional[bool]:
        """Return True to invalidate (reject) the match."""
        if self.validator_func:
            return not self._execute_validator(pattern_text, "INVALIDATE")
        return None


# ============================================================================
# Configuration
# ============================================================================

def resolve_config_path(path: Optional[str] = None) -> Path:
    """Explicit path, then ``$PESEL_RECOGNIZER_CONFIG``, then the packaged default."""
    return Path(path or os.getenv(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)


def check_pattern_safety(regex_str: str, timeout: float = DEFAULT_REGEX_TIMEOUT) -> None:
    """
    Reject patterns that are too long, ReDoS-prone or invalid.

    Raises:
        ValueError: If the pattern must not be used
    """
    if len(regex_str) > MAX_PATTERN_LENGTH:
        logger.warning(f"Regex pattern too long ({len(regex_str)} chars): {regex_str[:50]}...")
        raise ValueError(f"Regex pattern exceeds maximum length of {MAX_PATTERN_LENGTH} characters")

    if _NESTED_QUANTIFIER_REGEX.search(regex_str):
        logger.warning(f"Potentially dangerous nested quantifiers: {regex_str}")
        raise ValueError("Regex contains nested quantifiers which may cause ReDoS")

    try:
        compiled = regex.compile(regex_str)
    except regex.error as e:
        logger.error(f"Invalid regex {regex_str!r}: {e}")
        raise ValueError(f"Invalid regex pattern: {e}")

    try:
        compiled.search(REDOS_PROBE, timeout=timeout)
    except TimeoutError:
        logger.warning(f"Regex probe exceeded {timeout}s: {regex_str}")
        raise ValueError(f"Regex pattern exceeded match timeout of {timeout}s")


def load_recognizer_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load and structurally check the recognizer YAML document.

    Raises:
        FileNotFoundError: If the file does not exist
        yaml.YAMLError: If the file is not valid YAML
        ValueError: If the document has no ``recognizers`` list
    """
    config_path = resolve_config_path(path)
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except FileNotFoundError:
        logger.error(f"Recognizers YAML file not found: {config_path}")
        raise
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse recognizers YAML: {e}")
        raise

    if not isinstance(config, dict) or not isinstance(config.get("recognizers"), list):
        logger.error(f"Recognizers YAML has no 'recognizers' list: {config_path}")
        raise ValueError(f"Invalid recognizer config in {config_path}: expected a 'recognizers' list")

    return config


def build_pesel_recognizers(config: Dict[str, Any]) -> List[ValidatedPatternRecognizer]:
    """Build one validated recognizer per entry of ``config['recognizers']``."""
    recognizers = []
    for rec_config in config["recognizers"]:
        try:
            name = rec_config["name"]
            pattern_configs = rec_config["patterns"]
        except (KeyError, TypeError) as e:
            logger.error(f"Recognizer entry is missing a required field: {e}")
            raise ValueError(f"Recognizer entry is missing a required field: {e}")

        if not isinstance(pattern_configs, list):
            logger.error(f"Recognizer '{name}' patterns must be a list, got {type(pattern_configs).__name__}")
            raise ValueError(f"Recognizer '{name}' patterns must be a list")

        patterns = []
        for pattern_config in pattern_configs:
            try:
                regex_str = pattern_config["regex"]
                pattern_name = pattern_config["name"]
                score = float(pattern_config["score"])
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Invalid pattern in recognizer '{name}': {e}")
                raise ValueError(f"Pattern in recognizer '{name}' is missing a required field: {e}")

            if not isinstance(regex_str, str):
                logger.error(f"Pattern '{pattern_name}' in recognizer '{name}' has a non-string regex")
                raise ValueError(f"Pattern '{pattern_name}' in recognizer '{name}' has a non-string regex")

            check_pattern_safety(regex_str)
            patterns.append(Pattern(name=pattern_name, regex=regex_str, score=score))

        if not patterns:
            logger.error(f"Recognizer '{name}' defines no patterns")
            raise ValueError(f"Recognizer '{name}' defines no patterns")

        context = rec_config.get("context", [])
        recognizer = ValidatedPatternRecognizer(
            supported_entity=rec_config.get("supported_entity", DEFAULT_ENTITY),
            name=name,
            supported_language=rec_config.get("supported_language", DEFAULT_LANGUAGE),
            patterns=patterns,
            context=context if context else None,
            validator_func=checksum_pesel,
        )
        recognizers.append(recognizer)
        logger.info(f"Loaded PESEL recognizer: {name} ({len(patterns)} patterns)")

    return recognizers


def load_pesel_recognizers(path: Optional[str] = None) -> List[ValidatedPatternRecognizer]:
    """Load the recognizer config and build validated recognizers from it."""
    return build_pesel_recognizers(load_recognizer_config(path))
