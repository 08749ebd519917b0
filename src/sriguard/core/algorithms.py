"""Algorithm strength ordering and selection.

The strength order is a fixed preorder:

    sha512 > sha384 > sha256 > sha1 > (everything else)

Unknown algorithms are mutually equal and weaker than any listed one.
Selection walks the candidates once, keeping a running best; ties keep
the first-seen algorithm.

A custom picker can replace the default comparison. It is called as
``picker(current_best, challenger)`` and returns the preferred algorithm
name, or a falsy value to keep the current best.
"""

from enum import Enum
from typing import Callable, Iterable, Optional

from sriguard.errors import NoValidHashesError


class HashAlgorithm(Enum):
    """Algorithms with a known rank, weakest first."""
    SHA1 = "sha1"
    SHA256 = "sha256"
    SHA384 = "sha384"
    SHA512 = "sha512"


# Algorithms accepted by strict-mode parsing and serialization
STRICT_ALGORITHMS = (
    HashAlgorithm.SHA256.value,
    HashAlgorithm.SHA384.value,
    HashAlgorithm.SHA512.value,
)


_PRIORITY = [algorithm.value for algorithm in HashAlgorithm]

PickAlgorithm = Callable[[str, str], Optional[str]]


def algorithm_rank(algorithm: str) -> int:
    """Return the strength rank of an algorithm (0 for unknown)."""
    try:
        return _PRIORITY.index(algorithm.lower()) + 1
    except ValueError:
        return 0


def prefer_stronger(current: str, challenger: str) -> str:
    """Default picker: keep ``current`` unless ``challenger`` is strictly stronger."""
    if algorithm_rank(challenger) > algorithm_rank(current):
        return challenger
    return current


def select_algorithm(
    algorithms: Iterable[str],
    pick_algorithm: Optional[PickAlgorithm] = None,
) -> str:
    """Pick one algorithm out of ``algorithms``.

    Args:
        algorithms: Candidate algorithm names, in first-seen order
        pick_algorithm: Optional custom picker

    Returns:
        The selected algorithm name

    Raises:
        NoValidHashesError: If there are no candidates
    """
    candidates = list(algorithms)
    if not candidates:
        raise NoValidHashesError()

    picker = pick_algorithm or prefer_stronger
    best = candidates[0]
    for challenger in candidates[1:]:
        best = picker(best, challenger) or best
    return best
