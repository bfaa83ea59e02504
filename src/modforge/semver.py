"""Semantic version helpers for module requests.

Module requests carry a free-form ``version`` string. When that string
parses as an npm-style range (``^1.2.0``, ``>=0.5.0 <0.7``, ``~1.x``,
``1.2 - 1.4.5``, ``2.0.0-rc.1 || 1.x``) it constrains the tags the version
resolver may pick; anything else (``main``, ``rc``, ``feature/foo``) is
treated as a release channel or branch name.

Ranges and versions are handled by ``semantic_version``. Pre-release
versions follow the npm rule: they only satisfy a range when a comparator
in the same ``||`` group names a pre-release of the same
``major.minor.patch``.
"""

from __future__ import annotations

import re

from semantic_version import NpmSpec, Version

__all__ = [
    "Constraint",
    "InvalidConstraint",
    "InvalidVersion",
    "is_constraint",
    "parse_tolerant",
]

# "v" prefixes on versions, including after an operator ("^v1.2.0").
_V_PREFIX_RE = re.compile(r"(?<![0-9A-Za-z])[vV](?=\d)")
# Space between an operator and its version (">= 1.2.0").
_OPERATOR_GAP_RE = re.compile(r"(<=|>=|<|>|=|\^|~)\s+(?=[vV]?\d)")


class InvalidConstraint(ValueError):
    """Raised when a string is not a version constraint."""


class InvalidVersion(ValueError):
    """Raised when a string is not a semantic version."""


def parse_tolerant(text: str) -> Version:
    """Parse a version leniently (leading ``v``, surrounding spaces, short forms).

    Raises:
        InvalidVersion: If the text is not a version at all.
    """
    cleaned = _V_PREFIX_RE.sub("", text.strip(), count=1)
    try:
        return Version.coerce(cleaned)
    except ValueError as exc:
        raise InvalidVersion(f"invalid version: {text!r}") from exc


class Constraint:
    """A parsed version range."""

    def __init__(self, text: str, spec: NpmSpec):
        self.text = text
        self._spec = spec

    @classmethod
    def parse(cls, text: str) -> "Constraint":
        """Parse *text*; commas are accepted as AND separators.

        Raises:
            InvalidConstraint: If *text* is empty or not a range.
        """
        if not text or not text.strip():
            raise InvalidConstraint("improper constraint: empty string")
        expression = _OPERATOR_GAP_RE.sub(r"\1", text.replace(",", " "))
        expression = " ".join(_V_PREFIX_RE.sub("", expression).split())
        try:
            spec = NpmSpec(expression)
        except ValueError as exc:
            raise InvalidConstraint(f"improper constraint: {text.strip()}") from exc
        return cls(text, spec)

    def check(self, version: str | Version) -> bool:
        """Return True when *version* satisfies this range.

        Versions that cannot be parsed (branch names) never satisfy.
        """
        if isinstance(version, str):
            try:
                version = parse_tolerant(version)
            except InvalidVersion:
                return False
        return self._spec.match(version)

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"Constraint({self.text!r})"


def is_constraint(text: str) -> bool:
    """Return True if *text* parses as a version constraint."""
    try:
        Constraint.parse(text)
    except InvalidConstraint:
        return False
    return True
