from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class DownstreamResponse:
	"""Status and decoded JSON body returned by the downstream service."""

	status_code: int
	body: Any


class AbstractDownstreamClient(ABC):
	"""Interface for clients that forward JSON bodies to the downstream API."""

	@abstractmethod
	async def forward(self, payload: Any, *, identity: str) -> DownstreamResponse:
		"""Send the caller's JSON payload downstream.

		Args:
			payload: Parsed JSON body from the inbound request.
			identity: Anonymous identity the request was admitted for.

		Returns:
			DownstreamResponse: Downstream status code and decoded body.

		Raises:
			DownstreamAppError: If the call times out, fails, or returns non-JSON.
		"""
		...

	async def close(self) -> None:
		"""Release network resources."""
		return None
