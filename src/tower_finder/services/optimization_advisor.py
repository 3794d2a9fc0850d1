"""Signal optimization advice derived from an environment analysis."""

from src.tower_finder.models.schemas import EnvironmentAnalysis, OptimizationReport, QualityTier
from src.tower_finder.utils.logging import get_logger

logger = get_logger(__name__)

# (exclusive lower bound on environment quality, tier, estimated improvement dB)
QUALITY_TIERS: tuple[tuple[float, QualityTier, int], ...] = (
    (0.8, QualityTier.EXCELLENT, 0),
    (0.6, QualityTier.GOOD, 5),
    (0.4, QualityTier.FAIR, 10),
)
POOR_TIER_IMPROVEMENT_DB = 15

HIGH_INTERFERENCE_THRESHOLD = 0.6
INTERFERENCE_IMPROVEMENT_DB = 5


def classify_quality(environment_quality: float) -> tuple[QualityTier, int]:
    """Map an environment quality score to its tier and base improvement estimate."""
    for lower_bound, tier, improvement in QUALITY_TIERS:
        if environment_quality > lower_bound:
            return tier, improvement
    return QualityTier.POOR, POOR_TIER_IMPROVEMENT_DB


class OptimizationAdvisor:
    """Turns an EnvironmentAnalysis into ranked recommendations."""

    @staticmethod
    def from_analysis(analysis: EnvironmentAnalysis) -> OptimizationReport:
        """
        Build an optimization report.

        Tier recommendations come first; the interference recommendation is
        appended independently of the tier.
        """
        tier, improvement = classify_quality(analysis.environment_quality)
        bearing = analysis.optimal_bearing
        recommendations: list[str] = []

        if tier == QualityTier.GOOD:
            recommendations.append(f"Consider moving to optimal bearing: {bearing:.1f}°")
        elif tier == QualityTier.FAIR:
            recommendations.append(f"Move to optimal bearing: {bearing:.1f}°")
            recommendations.append("Check for nearby obstacles blocking signal")
        elif tier == QualityTier.POOR:
            recommendations.append(f"Move to optimal bearing: {bearing:.1f}°")
            recommendations.append("Consider changing location to reduce interference")
            recommendations.append("Check if device supports higher frequency bands")

        if analysis.interference_level > HIGH_INTERFERENCE_THRESHOLD:
            recommendations.append("High interference detected - move away from electronic devices")
            improvement += INTERFERENCE_IMPROVEMENT_DB

        strongest = analysis.strongest_tower
        technical_details = {
            "signalToNoiseRatio": analysis.signal_to_noise_ratio,
            "interferenceLevel": analysis.interference_level,
            "environmentQuality": analysis.environment_quality,
            "towersDetected": len(analysis.nearby_towers),
            "strongestTowerBearing": strongest.bearing if strongest else None,
            "directionalityIndex": analysis.signal_pattern.directionality_index,
        }

        logger.debug(
            f"Optimization report: {tier.value}, {len(recommendations)} recommendations, "
            f"+{improvement}dB"
        )

        return OptimizationReport(
            current_quality=tier,
            recommendations=tuple(recommendations),
            optimal_orientation=bearing,
            estimated_improvement_db=improvement,
            technical_details=technical_details,
        )
