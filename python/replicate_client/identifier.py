"""Parsing of model identifiers such as ``owner/name`` or ``owner/name:version``."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Identifier:
    """A model reference, optionally pinned to a version."""
    owner: str
    name: str
    version: Optional[str] = None


def parse_identifier(identifier: str) -> Optional[Identifier]:
    """
    Parse an identifier string.

    Args:
        identifier: ``owner/name`` or ``owner/name:version``

    Returns:
        The parsed Identifier, or None if the string is not of that form
        (for example a bare version id).
    """
    parts = identifier.split("/")
    if len(parts) != 2:
        return None
    owner, rest = parts

    name, sep, version = rest.partition(":")
    if not owner or not name:
        return None
    if sep:
        if not version or ":" in version:
            return None
        return Identifier(owner=owner, name=name, version=version)
    return Identifier(owner=owner, name=name)
