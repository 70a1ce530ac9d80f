#!/usr/bin/env python3
"""
Bottle Version Comparison

Orders dotted-numeric version strings. Pre-release suffixes are ignored, so
"1.2.3-beta" and "1.2.3" compare equal. This is not semver precedence.
"""

from enum import Enum
from typing import List


class Ordering(Enum):
    """Result of comparing two versions"""
    LESS = -1
    EQUAL = 0
    GREATER = 1

    def reverse(self) -> 'Ordering':
        return Ordering(-self.value)


def parse_version(version: str) -> List[int]:
    """
    Split a version into its numeric parts.

    Each dot-separated segment loses any "-suffix" before parsing. Segments that
    are not plain non-negative integers are dropped rather than zero-padded.

    Args:
        version: Version string (e.g., '1.2.3', '0.4.0-rc1', 'v2')

    Returns:
        List of integers (e.g., [1, 2, 3])
    """
    parts = []
    for segment in version.split('.'):
        numeric = segment.split('-', 1)[0]
        if numeric.isascii() and numeric.isdigit():
            parts.append(int(numeric))
    return parts


def compare_versions(a: str, b: str) -> Ordering:
    """
    Compare two version strings.

    The first unequal numeric part decides. When one version is a prefix of
    the other, the longer one is greater ('1.0' < '1.0.1').

    Args:
        a: Left-hand version
        b: Right-hand version

    Returns:
        Ordering of a relative to b
    """
    va = parse_version(a)
    vb = parse_version(b)

    for pa, pb in zip(va, vb):
        if pa < pb:
            return Ordering.LESS
        if pa > pb:
            return Ordering.GREATER

    if len(va) < len(vb):
        return Ordering.LESS
    if len(va) > len(vb):
        return Ordering.GREATER
    return Ordering.EQUAL


def looks_like_semver(version: str) -> bool:
    """Check that a version has at least x.y numeric parts and nothing else"""
    parts = version.split('.')
    if len(parts) < 2:
        return False
    return all(p.isascii() and p.isdigit() for p in parts)
