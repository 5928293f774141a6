"""Remote reasoning service configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

REASONER_TIMEOUT_SECONDS = 60.0


@dataclass(frozen=True)
class ReasonerConfig:
    """Holds the classification service endpoint and credentials."""

    base_url: str
    resilience: ResilienceConfig
    username: str | None = None
    password: str | None = None

    @property
    def auth(self) -> tuple[str, str] | None:
        if self.username is None or self.password is None:
            return None
        return self.username, self.password


def get_reasoner_config(*, resilience: ResilienceConfig | None = None) -> ReasonerConfig:
    values = require_env_vars(("CLASSIPY_REASONER_URL",))
    base_url = values["CLASSIPY_REASONER_URL"].strip().rstrip("/") + "/"
    return ReasonerConfig(
        base_url=base_url,
        username=optional_env_var("CLASSIPY_REASONER_USERNAME"),
        password=optional_env_var("CLASSIPY_REASONER_PASSWORD"),
        resilience=resilience
        or ResilienceConfig(
            name="reasoner",
            base_url=base_url,
            timeout_seconds=REASONER_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
        ),
    )
