"""Public interface for the classification service adapter."""

from __future__ import annotations

from .client import HttpReasonerClient, job_id_from_location
from .schema import ClassificationStatusResponse

__all__ = ["ClassificationStatusResponse", "HttpReasonerClient", "job_id_from_location"]
