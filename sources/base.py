"""
Base Source
Abstract base class for every news source collaborator
"""
from abc import ABC, abstractmethod
from typing import List

from core import Article


class NewsSource(ABC):
    """
    News source collaborator

    Each source is an independent failure domain: it either returns a batch
    of articles or raises, and the aggregator decides what a failure costs.
    Sources drop items older than their retention window themselves.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Display name, also stamped on every article as ``source``"""
        pass

    @abstractmethod
    async def fetch_articles(self) -> List[Article]:
        """
        Fetch the current batch of articles

        Returns:
            Articles in feed order

        Raises:
            SourceFetchError: the source could not be read
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
