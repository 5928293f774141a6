"""HTTP client for the remote classification (reasoning) service."""

from __future__ import annotations

import asyncio
import io
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, BinaryIO, Final

import httpx
from pydantic import ValidationError

from classipy.adapters.http_resilience import ResilientClient
from classipy.config.reasoner import ReasonerConfig, get_reasoner_config
from classipy.domain.ports.reasoner import (
    ReasonerCommunicationError,
    ReasonerStatus,
    RemoteReasonerClient,
)

from .schema import ClassificationStatusResponse

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine
    from pathlib import Path

log = getLogger(__name__)

CLASSIFICATIONS_PATH: Final[str] = "classifications"
RESULTS_SUFFIX: Final[str] = "results/rf2"


def _default_client_factory(config: ReasonerConfig) -> ResilientClient:
    return ResilientClient(config.resilience, auth=config.auth)


def job_id_from_location(location: str | None) -> str:
    if not location:
        raise ReasonerCommunicationError("Classification service did not return a job location")
    job_id = location.rstrip("/").rsplit("/", 1)[-1]
    if not job_id:
        raise ReasonerCommunicationError(f"Unusable job location {location!r}")
    return job_id


def _raise_for_status(response: httpx.Response, action: str) -> None:
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise ReasonerCommunicationError(
            f"Failed to {action}: HTTP {response.status_code}",
            status_code=response.status_code,
        ) from exc


@dataclass(slots=True)
class HttpReasonerClient:
    config: ReasonerConfig = field(default_factory=get_reasoner_config)
    client_factory: Callable[[ReasonerConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    def submit(
        self,
        *,
        previous_package: str | None,
        dependency_package: str | None,
        delta_archive: Path,
        path: str,
        reasoner_id: str,
    ) -> str:
        data = {
            "previousPackage": previous_package,
            "dependencyPackage": dependency_package,
            "branch": path,
            "reasonerId": reasoner_id,
        }
        form = {key: value for key, value in data.items() if value is not None}
        return self._run(self._submit_async(form, delta_archive), action="submit classification")

    def get_status(self, job_id: str) -> ReasonerStatus:
        payload = self._run(self._get_status_async(job_id), action="fetch classification status")
        try:
            response = ClassificationStatusResponse.model_validate(payload)
        except ValidationError as exc:
            raise ReasonerCommunicationError(
                f"Unexpected status payload for classification {job_id}"
            ) from exc
        return ReasonerStatus(
            status=response.status,
            error_message=response.error_message,
            developer_message=response.developer_message,
        )

    def download_results(self, job_id: str) -> BinaryIO:
        content = self._run(self._download_async(job_id), action="download classification results")
        log.debug("Downloaded %s bytes of results for classification %s", len(content), job_id)
        return io.BytesIO(content)

    def _url(self, *parts: str) -> str:
        return self.config.base_url + "/".join((CLASSIFICATIONS_PATH, *parts))

    def _run[T](self, coroutine: Coroutine[object, object, T], *, action: str) -> T:
        try:
            return asyncio.run(coroutine)
        except httpx.HTTPError as exc:
            raise ReasonerCommunicationError(f"Failed to {action}: {exc}") from exc

    async def _submit_async(self, form: dict[str, str], delta_archive: Path) -> str:
        async with self.client_factory(self.config) as client:
            with delta_archive.open("rb") as archive:
                response = await client.post(
                    self._url(),
                    data=form,
                    files={"rf2Delta": (delta_archive.name, archive, "application/zip")},
                )
        _raise_for_status(response, "submit classification")
        return job_id_from_location(response.headers.get("Location"))

    async def _get_status_async(self, job_id: str) -> object:
        async with self.client_factory(self.config) as client:
            response = await client.get(self._url(job_id))
        _raise_for_status(response, f"fetch status of classification {job_id}")
        try:
            return response.json()
        except ValueError as exc:
            raise ReasonerCommunicationError(
                f"Status of classification {job_id} is not JSON"
            ) from exc

    async def _download_async(self, job_id: str) -> bytes:
        async with self.client_factory(self.config) as client:
            response = await client.get(self._url(job_id, RESULTS_SUFFIX))
        _raise_for_status(response, f"download results of classification {job_id}")
        return response.content


if TYPE_CHECKING:
    _client_check: RemoteReasonerClient = HttpReasonerClient()
