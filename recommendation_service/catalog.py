"""
Item catalog.

Holds a read-only, in-memory snapshot of the items supplied by the
persistence store. The snapshot is swapped atomically on refresh so readers
never see a half-loaded catalog.
"""

import json
import logging
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol

from .errors import ValidationError
from .models.items import Item, RecommendationType

logger = logging.getLogger(__name__)


class ItemSource(Protocol):
    """Anything able to hand over the current set of recommendable items."""

    def load_items(self) -> Iterable[Item]:
        """Return every item known to the persistence store."""


class StaticItemSource:
    """Item source backed by an in-memory sequence."""

    def __init__(self, items: Iterable[Item]):
        self._items = list(items)

    def load_items(self) -> Iterable[Item]:
        return list(self._items)


class JsonItemSource:
    """Item source backed by a JSON file holding a list of item records."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load_items(self) -> Iterable[Item]:
        data = json.loads(self.path.read_text(encoding="utf-8"))
        records = data.get("items", []) if isinstance(data, dict) else data
        items: List[Item] = []
        for record in records:
            try:
                items.append(Item.from_dict(record))
            except ValidationError as e:
                logger.warning(f"Skipping invalid item record in {self.path.name}: {e}")
        return items


class ItemCatalog:
    """Snapshot of recommendable items with liveness filtering."""

    def __init__(self, source: ItemSource, expiry_grace: timedelta = timedelta(days=14)):
        """
        Args:
            source: Where items are loaded from
            expiry_grace: How long after its end an item stays recommendable
        """
        self.source = source
        self.expiry_grace = expiry_grace
        self._items: Dict[str, Item] = {}
        self._loaded_at: Optional[datetime] = None
        self._refresh_lock = threading.Lock()
        self.refresh()

    def refresh(self) -> int:
        """Reload the snapshot from the source. Returns the number of items loaded."""
        with self._refresh_lock:
            items = {item.id: item for item in self.source.load_items()}
            self._items = items
            self._loaded_at = datetime.now(timezone.utc)
        logger.info(f"Item catalog refreshed with {len(items)} items")
        return len(items)

    @property
    def loaded_at(self) -> Optional[datetime]:
        return self._loaded_at

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def get(self, item_id: str) -> Optional[Item]:
        return self._items.get(item_id)

    def all_items(self) -> List[Item]:
        return list(self._items.values())

    def is_live(self, item: Item, now: datetime) -> bool:
        """An item is live unless it is cancelled or ended longer ago than the grace period."""
        if item.is_cancelled():
            return False
        end = item.metadata.end_date or item.metadata.start_date
        if end is not None and now - end > self.expiry_grace:
            return False
        return True

    def live_items(self, now: Optional[datetime] = None, item_type: Optional[RecommendationType] = None) -> List[Item]:
        """Items that can currently be recommended, ordered by id."""
        now = now or datetime.now(timezone.utc)
        items = self._items.values()
        return sorted(
            (
                item for item in items
                if self.is_live(item, now) and (item_type is None or item.type is item_type)
            ),
            key=lambda item: item.id,
        )
