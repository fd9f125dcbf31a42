from abc import ABC, abstractmethod
from typing import Iterable, Optional

from oddsbook.models.odds import Match, MarketDescriptor, SportInfo


class BaseOddsProvider(ABC):
    """Abstract base class for upstream odds providers."""

    @abstractmethod
    async def list_sports(self, api_key: Optional[str] = None) -> list[SportInfo]:
        """Return the sports the provider currently covers."""
        ...

    @abstractmethod
    async def list_markets(self, sport_key: str, api_key: Optional[str] = None) -> list[MarketDescriptor]:
        """Return market metadata for a sport; an empty list when the provider has none."""
        ...

    @abstractmethod
    async def get_odds(
        self,
        sport_key: str,
        markets: Iterable[str] | str,
        bookmakers: Optional[Iterable[str]] = None,
        regions: Optional[Iterable[str] | str] = None,
        api_key: Optional[str] = None,
    ) -> list[Match]:
        """Fetch odds for every event of a sport.

        Raises RateLimited on 429, BadRequest on 400 and UpstreamError on
        any other non-2xx response.
        """
        ...
