"""Cellular/WiFi band lookups and coarse signal tiering.

Raw carrier values reported by the platform are either channel codes
(EARFCN-like indices, always below 100000) or absolute frequencies in Hz.
"""

# Channel codes are small integers, absolute frequencies are in Hz
CHANNEL_CODE_LIMIT = 100_000

MIN_PLAUSIBLE_MHZ = 400.0
MAX_PLAUSIBLE_MHZ = 6000.0
FALLBACK_FREQUENCY_MHZ = 1800.0

# (upper bound of channel code, representative band frequency in MHz)
CHANNEL_CODE_BANDS: tuple[tuple[int, float], ...] = (
    (600, 2100.0),  # Band 1
    (1200, 1900.0),  # Band 2
    (2000, 1800.0),  # Band 3
    (3000, 900.0),  # Band 8
)

SIGNAL_TIER_THRESHOLDS: tuple[tuple[int, float, str], ...] = (
    (-70, 1.0, "Excellent"),
    (-85, 0.8, "Good"),
    (-100, 0.6, "Fair"),
)
SIGNAL_TIER_FLOOR = (0.4, "Poor")

DISTANCE_TIER_THRESHOLDS: tuple[tuple[float, float], ...] = (
    (1000.0, 1.0),
    (5000.0, 0.8),
    (15000.0, 0.6),
)
DISTANCE_TIER_FLOOR = 0.4

WIFI_QUALITY_THRESHOLDS: tuple[tuple[int, str], ...] = (
    (-30, "Excellent"),
    (-50, "Good"),
    (-70, "Fair"),
)


def normalize_frequency_mhz(raw_frequency: float, fallback_mhz: float = FALLBACK_FREQUENCY_MHZ) -> float:
    """Convert a raw carrier value into a plausible frequency in MHz.

    Channel codes map onto a representative band frequency; absolute
    values are taken as Hz. Anything outside [400, 6000] MHz falls back.
    """
    if raw_frequency < CHANNEL_CODE_LIMIT:
        frequency_mhz = fallback_mhz
        for upper_bound, band_mhz in CHANNEL_CODE_BANDS:
            if raw_frequency < upper_bound:
                frequency_mhz = band_mhz
                break
    else:
        frequency_mhz = raw_frequency / 1_000_000.0

    if frequency_mhz < MIN_PLAUSIBLE_MHZ or frequency_mhz > MAX_PLAUSIBLE_MHZ:
        return fallback_mhz
    return frequency_mhz


def band_class_for_frequency(frequency_hz: int) -> int:
    """Return the LTE band class for an absolute frequency, 0 if unknown."""
    if 800_000_000 <= frequency_hz <= 900_000_000:
        return 8
    if 1_700_000_000 <= frequency_hz <= 1_900_000_000:
        return 3
    if 2_100_000_000 <= frequency_hz <= 2_200_000_000:
        return 1
    return 0


def wifi_channel_for_frequency(frequency_mhz: int) -> int:
    """Return the WiFi channel number for a frequency in MHz, 0 if unknown."""
    if 2412 <= frequency_mhz <= 2484:
        return (frequency_mhz - 2412) // 5 + 1
    if 5170 <= frequency_mhz <= 5825:
        return (frequency_mhz - 5000) // 5
    return 0


def signal_tier_score(signal_strength_dbm: float) -> float:
    """Coarse score for a cellular signal level (1.0 best, 0.4 worst)."""
    for threshold, score, _ in SIGNAL_TIER_THRESHOLDS:
        if signal_strength_dbm >= threshold:
            return score
    return SIGNAL_TIER_FLOOR[0]


def cellular_signal_quality(signal_strength_dbm: float) -> str:
    """Human-readable label for a cellular signal level."""
    for threshold, _, label in SIGNAL_TIER_THRESHOLDS:
        if signal_strength_dbm >= threshold:
            return label
    return SIGNAL_TIER_FLOOR[1]


def wifi_signal_quality(signal_strength_dbm: float) -> str:
    """Human-readable label for a WiFi signal level."""
    for threshold, label in WIFI_QUALITY_THRESHOLDS:
        if signal_strength_dbm >= threshold:
            return label
    return "Poor"


def distance_tier_score(distance_m: float) -> float:
    """Coarse score for an estimated tower distance (closer is better)."""
    for threshold, score in DISTANCE_TIER_THRESHOLDS:
        if distance_m <= threshold:
            return score
    return DISTANCE_TIER_FLOOR


def format_distance(distance_m: float) -> str:
    """Format a distance for display: metres below 1 km, kilometres above."""
    if distance_m < 1000:
        return f"{distance_m:.0f} m"
    return f"{distance_m / 1000:.1f} km"
