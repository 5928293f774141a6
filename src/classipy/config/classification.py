"""Classification job defaults: polling cadence, timeouts and batch sizes."""

from __future__ import annotations

from dataclasses import dataclass

from .env import positive_float_env_var, positive_int_env_var
from .errors import ConfigurationError

DEFAULT_ABORT_AFTER_MINUTES = 45
DEFAULT_POLL_INTERVAL_SECONDS = 1.0
DEFAULT_COOL_OFF_SECONDS = 30.0
# Upper bound on clauses in one semantic index lookup.
DEFAULT_LOOKUP_BATCH_SIZE = 900
DEFAULT_WRITE_BATCH_SIZE = 10_000
DEFAULT_MERGE_WINDOW_SIZE = 10_000
DEFAULT_SAVE_WORKERS = 1


@dataclass(frozen=True, slots=True)
class ClassificationConfig:
    abort_after_minutes: int = DEFAULT_ABORT_AFTER_MINUTES
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    cool_off_seconds: float = DEFAULT_COOL_OFF_SECONDS
    lookup_batch_size: int = DEFAULT_LOOKUP_BATCH_SIZE
    write_batch_size: int = DEFAULT_WRITE_BATCH_SIZE
    merge_window_size: int = DEFAULT_MERGE_WINDOW_SIZE
    save_workers: int = DEFAULT_SAVE_WORKERS

    def __post_init__(self) -> None:
        for name in (
            "abort_after_minutes",
            "poll_interval_seconds",
            "cool_off_seconds",
            "lookup_batch_size",
            "write_batch_size",
            "merge_window_size",
            "save_workers",
        ):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")


def get_classification_config() -> ClassificationConfig:
    return ClassificationConfig(
        abort_after_minutes=positive_int_env_var(
            "CLASSIPY_ABORT_AFTER_MINUTES", DEFAULT_ABORT_AFTER_MINUTES
        ),
        poll_interval_seconds=positive_float_env_var(
            "CLASSIPY_POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_SECONDS
        ),
        cool_off_seconds=positive_float_env_var(
            "CLASSIPY_COOL_OFF_SECONDS", DEFAULT_COOL_OFF_SECONDS
        ),
        save_workers=positive_int_env_var("CLASSIPY_SAVE_WORKERS", DEFAULT_SAVE_WORKERS),
    )
