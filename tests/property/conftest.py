"""Hypothesis profiles for the geodesy and analysis property suites.

Select one with HYPOTHESIS_PROFILE=ci|dev|debug|thorough.
"""

import os

from hypothesis import HealthCheck, Verbosity, settings

PROFILES = {
    "ci": {"max_examples": 100, "deadline": 2000, "suppress_health_check": [HealthCheck.too_slow]},
    "dev": {"max_examples": 50, "deadline": 1000},
    "debug": {"max_examples": 10, "deadline": None, "verbosity": Verbosity.verbose},
    "thorough": {"max_examples": 1000, "deadline": 5000},
}

for name, options in PROFILES.items():
    settings.register_profile(name, print_blob=True, **options)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))
