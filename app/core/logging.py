"""
Logging configuration for the leave rules engine
"""
import logging
import sys
from app.core.config import settings

# Engine modules whose decisions are logged at INFO (status transitions, commits, conflicts)
ENGINE_LOGGERS = (
    "app.services.leave_validator",
    "app.services.approval_workflow",
    "app.services.allocation_service",
    "app.services.team_capacity_service",
    "app.services.leave_service",
)


def setup_logging() -> None:
    """
    Configure Python logging based on settings

    Sets up:
    - Console handler with appropriate format
    - Log level from settings.LOG_LEVEL
    - Engine decision loggers kept at INFO or finer so transitions are never lost
    - Quieter third-party loggers (uvicorn access log, SQL echo)
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    for name in ENGINE_LOGGERS:
        logging.getLogger(name).setLevel(min(log_level, logging.INFO))

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def log_leave_policy(policy) -> None:
    """Log the effective leave policy once at startup"""
    logging.getLogger(__name__).info(
        "leave policy: vacation_days=%s weekend_leaves=%s max_days=%s extended_after=%s "
        "capacity_ratio=%s working_weekdays=%s weekend_weekdays=%s",
        policy.vacation_days_per_period,
        policy.weekend_leaves_per_period,
        policy.max_consecutive_days,
        policy.extended_threshold_days,
        policy.team_capacity_ratio,
        sorted(policy.working_weekdays),
        sorted(policy.weekend_working_weekdays),
    )
