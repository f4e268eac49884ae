"""Vector math helpers."""

import math
from collections.abc import Sequence


def cosine_similarity(
    a: Sequence[float] | None,
    b: Sequence[float] | None,
) -> float:
    """Cosine similarity between two vectors.

    Returns 0.0 when either vector is missing, the lengths differ, or
    either vector has zero norm.
    """
    if a is None or b is None or len(a) != len(b):
        return 0.0

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b, strict=True):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))
