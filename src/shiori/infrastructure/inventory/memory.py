"""
In-memory inventory source: items and counters held by the caller.
"""

from collections.abc import Iterable

from shiori.domain.models import ItemKind, LearnableItem, LearnerProfile
from shiori.domain.ports import InventorySource


class InMemoryInventorySource(InventorySource):
    def __init__(
        self,
        items: Iterable[LearnableItem] = (),
        profile: LearnerProfile | None = None,
    ):
        self.items = list(items)
        self.profile = profile or LearnerProfile()

    def upsert(self, item: LearnableItem) -> None:
        """Replace the item with the same id, or append it."""
        for idx, existing in enumerate(self.items):
            if existing.id == item.id and existing.kind == item.kind:
                self.items[idx] = item
                return
        self.items.append(item)

    def get(self, item_id: int, kind: ItemKind = ItemKind.LEXICAL) -> LearnableItem | None:
        """Ids are unique per kind; lexical and grammar items may share one."""
        return next((i for i in self.items if i.id == item_id and i.kind == kind), None)

    async def get_items(self) -> list[LearnableItem]:
        return list(self.items)

    async def get_learner_profile(self) -> LearnerProfile:
        return self.profile
