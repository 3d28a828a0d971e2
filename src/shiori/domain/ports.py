"""
Ports (interfaces) for the learner inventory and the reference corpus.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod

from .curriculum.models import ReferenceCorpus
from .models import LearnableItem, LearnerProfile


class InventorySource(ABC):
    """
    Port for reading the learner's item inventory.

    Implementations:
        - InMemoryInventorySource: items held by the caller.
        - JsonInventorySource: a read-only JSON export on disk.
    """

    @abstractmethod
    async def get_items(self) -> list[LearnableItem]:
        """
        Fetch every item in the learner's inventory, Unseen included.

        Returns:
            List of LearnableItem snapshots.
        """
        pass

    @abstractmethod
    async def get_learner_profile(self) -> LearnerProfile:
        """
        Fetch the persisted learner counters (streaks, daily limit).
        """
        pass


class CorpusSource(ABC):
    """
    Port for loading the reference corpus.

    Implementations:
        - FileCorpusSource: JSON or YAML file, cached per path.
    """

    @abstractmethod
    def load(self) -> ReferenceCorpus:
        """
        Return the reference corpus. Must be cheap after the first call.
        """
        pass
