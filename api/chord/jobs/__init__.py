from .matching import run_daily_matching_job
from .sync import sync_taste_profile_job

__all__ = [
    "run_daily_matching_job",
    "sync_taste_profile_job",
]
"""Background job modules for RQ workers and schedulers."""
