"""Progress extraction from prediction logs.

Models commonly print tqdm-style progress bars, e.g.::

    45%|████▌     | 9/20 [00:03<00:04,  2.61it/s]

The latest such line in the logs gives the current progress.
"""

import re
from dataclasses import dataclass
from typing import Optional

_PROGRESS_PATTERN = re.compile(
    r"^\s*(?P<percentage>\d+)%\s*\|.+?\|\s*(?P<current>\d+)/(?P<total>\d+)",
    re.ASCII,
)


@dataclass(frozen=True)
class PredictionProgress:
    """Point-in-time completion estimate."""
    percentage: float
    current: int
    total: int


def parse_progress(logs: Optional[str]) -> Optional[PredictionProgress]:
    """
    Find the most recent progress line in ``logs``.

    Lines are scanned from last to first; the first match wins.

    Returns:
        PredictionProgress, or None if logs are empty or contain no
        progress line.
    """
    if not logs:
        return None

    for line in reversed(logs.split("\n")):
        match = _PROGRESS_PATTERN.match(line)
        if match is None:
            continue
        try:
            percentage = int(match.group("percentage"))
            current = int(match.group("current"))
            total = int(match.group("total"))
        except ValueError:
            return None
        return PredictionProgress(
            percentage=percentage / 100.0,
            current=current,
            total=total,
        )

    return None
