"""Matching between two integrity collections.

The algorithm compared is picked among those both sides carry (optionally
narrowed by an allow-list). A match is the first of our entries for that
algorithm whose digest equals any of theirs.
"""

from typing import Iterable, Optional

from sriguard.core.algorithms import PickAlgorithm, select_algorithm


def shared_algorithms(ours, theirs, algorithms: Optional[Iterable[str]] = None) -> list:
    """Algorithms present on both sides, in our first-seen order."""
    candidates = [algorithm for algorithm in ours.algorithms if algorithm in theirs]
    if algorithms is not None:
        allowed = {algorithm.lower() for algorithm in algorithms}
        candidates = [algorithm for algorithm in candidates if algorithm in allowed]
    return candidates


def match_integrity(
    ours,
    theirs,
    algorithms: Optional[Iterable[str]] = None,
    pick_algorithm: Optional[PickAlgorithm] = None,
):
    """Match two parsed collections.

    Args:
        ours: Integrity whose matching entry is returned
        theirs: Integrity to compare against
        algorithms: Optional allow-list of algorithms to consider
        pick_algorithm: Optional custom picker

    Returns:
        The matching entry from ``ours``, or ``False``
    """
    candidates = shared_algorithms(ours, theirs, algorithms)
    if not candidates:
        return False

    algorithm = select_algorithm(candidates, pick_algorithm)
    if algorithm not in ours or algorithm not in theirs:
        return False

    digests = {entry.digest for entry in theirs[algorithm]}
    for entry in ours[algorithm]:
        if entry.digest in digests:
            return entry
    return False
