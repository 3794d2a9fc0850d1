"""Directional signal pattern statistics."""

import numpy as np

from src.tower_finder.core.exceptions import InvalidInputError
from src.tower_finder.models.schemas import SignalPattern
from src.tower_finder.utils.geodesy import normalize_bearing
from src.tower_finder.utils.logging import get_logger

logger = get_logger(__name__)

# Reported when the mean strength is exactly zero and the ratio is undefined
DEGENERATE_DIRECTIONALITY_INDEX = 2.0


class SignalPatternAnalyzer:
    """Builds SignalPattern records from (bearing, strength) samples."""

    @staticmethod
    def from_measurements(strengths: list[int], bearings: list[float]) -> SignalPattern:
        """
        Summarize a batch of bearing probes.

        Args:
            strengths: Signal strengths in dBm, one per probe
            bearings: Probed bearings in degrees, parallel to strengths

        Returns:
            SignalPattern with peak, directionality index and quality

        Raises:
            InvalidInputError: If the sequences are empty or differ in length
        """
        if len(strengths) == 0 or len(bearings) == 0:
            raise InvalidInputError("Signal pattern needs at least one (bearing, strength) sample")
        if len(strengths) != len(bearings):
            raise InvalidInputError(
                f"Strength and bearing sequences differ in length: "
                f"{len(strengths)} != {len(bearings)}"
            )

        values = np.asarray(strengths, dtype=float)
        # argmax returns the first occurrence on ties
        peak_index = int(np.argmax(values))

        mean = float(np.mean(values))
        std_dev = float(np.sqrt(np.var(values)))

        if mean == 0.0:
            logger.warning("Signal pattern has zero mean strength, reporting degenerate quality")
            directionality_index = DEGENERATE_DIRECTIONALITY_INDEX
        else:
            # dBm means are negative, the ratio is taken against the magnitude
            directionality_index = std_dev / abs(mean)

        quality = float(np.clip(1.0 - directionality_index / 2.0, 0.0, 1.0))

        return SignalPattern(
            signal_strengths=tuple(int(s) for s in strengths),
            bearings=tuple(normalize_bearing(float(b)) for b in bearings),
            peak_bearing=normalize_bearing(float(bearings[peak_index])),
            peak_strength=int(strengths[peak_index]),
            directionality_index=directionality_index,
            quality=quality,
        )
