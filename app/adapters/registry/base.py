from abc import ABC, abstractmethod
from enum import Enum
from typing import Any


class LookupKind(str, Enum):
	"""Kind of registry lookup for a single entity."""

	PROFILE = "profile"
	FINANCIALS = "financials"


class AbstractRegistryClient(ABC):
	"""Interface for clients of the external company registry."""

	@abstractmethod
	async def lookup(
		self,
		credential: str,
		inn: str,
		kind: LookupKind,
	) -> dict[str, Any]:
		"""Fetch one entity's data from the registry.

		Args:
			credential: Caller-supplied registry API key.
			inn: Entity identifier (tax number).
			kind: Which dataset to fetch.

		Returns:
			dict[str, Any]: Registry payload, passed through unchanged.

		Raises:
			UpstreamAppError: Classified registry or transport failure.
		"""
		...

	async def aclose(self) -> None:
		"""Release network resources held by the client."""
		return None
