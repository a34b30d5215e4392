"""Progress accounting for count sessions."""
from dataclasses import dataclass, asdict


@dataclass(frozen=True)
class ProgressSnapshot:
    counted: int
    expected: int
    percent: float
    completed: bool

    def as_dict(self):
        return asdict(self)


def compute_progress(progress, expected_skus):
    """
    Derive completion and percentage from a progress map and the expected SKU set.

    ``completed`` is true when both sizes are equal; ``percent`` is 0 when
    nothing is expected and never exceeds 100.
    """
    counted = len(progress or {})
    expected = len(expected_skus or ())
    if expected == 0:
        percent = 0.0
    else:
        percent = min(round(counted / expected * 100, 1), 100.0)
    return ProgressSnapshot(
        counted=counted,
        expected=expected,
        percent=percent,
        completed=counted == expected,
    )
