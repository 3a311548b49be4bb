"""
Interaction Log

Append-only record of user interactions. Appends are serialized per item so
that counters replayed from one item's history stay consistent; appends on
different items never contend on a shared lock.
"""

import json
import logging
import threading
from bisect import insort
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Tuple
from urllib.parse import quote

from ..errors import ValidationError
from ..models.items import parse_datetime
from .interaction_types import InteractionType
from .models import Interaction, InteractionPayload

logger = logging.getLogger(__name__)

# Sort key: (timestamp, append sequence) keeps equal timestamps in append order.
_Entry = Tuple[datetime, int, Interaction]


class InteractionLog:
    """Durable, ordered, append-only interaction store."""

    def __init__(
        self,
        is_known_item: Optional[Callable[[str], bool]] = None,
        storage_dir: Optional[Path] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the interaction log.

        Args:
            is_known_item: Predicate telling whether an item id exists in the catalog.
                When omitted every item id is accepted.
            storage_dir: Optional directory where each item's history is kept as JSON lines
            clock: Source of server timestamps (UTC)
        """
        self._is_known_item = is_known_item or (lambda item_id: True)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.storage_dir = storage_dir

        self._registry_lock = threading.Lock()
        self._item_locks: Dict[str, threading.Lock] = {}
        self._by_item: Dict[str, List[_Entry]] = defaultdict(list)
        self._sequence = 0

        if self.storage_dir is not None:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            self._load_persisted()

    # Persistence ----------------------------------------------------------------

    def _item_file(self, item_id: str) -> Path:
        # File names are percent-encoded item ids and never contain a path separator.
        return self.storage_dir / f"{quote(item_id, safe='')}.jsonl"

    def _load_persisted(self) -> None:
        """Load every item history found in the storage directory."""
        loaded = 0
        for path in sorted(self.storage_dir.glob("*.jsonl")):
            for line_no, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
                if not line.strip():
                    continue
                try:
                    interaction = Interaction.from_dict(json.loads(line))
                except (json.JSONDecodeError, ValidationError) as e:
                    logger.warning(f"Skipping corrupt interaction at {path.name}:{line_no}: {e}")
                    continue
                if interaction.timestamp is None:
                    logger.warning(f"Skipping untimestamped interaction at {path.name}:{line_no}")
                    continue
                self._insert(interaction)
                loaded += 1
        logger.info(f"Loaded {loaded} interactions from {self.storage_dir}")

    def _persist(self, interaction: Interaction) -> None:
        # Caller holds the item lock.
        with open(self._item_file(interaction.item_id), "a", encoding="utf-8") as f:
            f.write(json.dumps(interaction.to_dict(), ensure_ascii=False) + "\n")

    # Internals --------------------------------------------------------------------

    def _lock_for(self, item_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._item_locks.get(item_id)
            if lock is None:
                lock = self._item_locks[item_id] = threading.Lock()
            return lock

    def _next_sequence(self) -> int:
        with self._registry_lock:
            self._sequence += 1
            return self._sequence

    def _insert(self, interaction: Interaction) -> None:
        entries = self._by_item[interaction.item_id]
        insort(entries, (interaction.timestamp, self._next_sequence(), interaction), key=lambda e: (e[0], e[1]))

    def _snapshot(self, item_id: Optional[str]) -> List[_Entry]:
        if item_id is not None:
            with self._lock_for(item_id):
                return list(self._by_item.get(item_id, ()))
        with self._registry_lock:
            item_ids = list(self._by_item.keys())
        entries: List[_Entry] = []
        for iid in item_ids:
            with self._lock_for(iid):
                entries.extend(self._by_item.get(iid, ()))
        entries.sort(key=lambda e: (e[0], e[1]))
        return entries

    # Public API -------------------------------------------------------------------

    def record(self, interaction: Interaction, dedup_window: Optional[timedelta] = None) -> bool:
        """Append an interaction.

        Args:
            interaction: Interaction to append; a missing timestamp is assigned by the server
            dedup_window: When given, an identical (user, item, type) interaction recorded
                within this window is treated as a duplicate and dropped

        Returns:
            True if the interaction was appended, False if it was dropped as a duplicate

        Raises:
            ValidationError: Unknown interaction type or unknown item
        """
        if not isinstance(interaction.interaction_type, InteractionType):
            raise ValidationError(f"Unknown interaction type: {interaction.interaction_type!r}")
        if not self._is_known_item(interaction.item_id):
            raise ValidationError(f"Unknown item: {interaction.item_id}")

        if interaction.timestamp is None:
            interaction = Interaction(
                user_id=interaction.user_id,
                item_id=interaction.item_id,
                interaction_type=interaction.interaction_type,
                timestamp=self._clock(),
                item_type=interaction.item_type,
                metadata=dict(interaction.metadata),
            )

        with self._lock_for(interaction.item_id):
            if dedup_window is not None:
                previous = self._last_unlocked(
                    interaction.user_id, interaction.item_id, interaction.interaction_type
                )
                if previous is not None and abs(interaction.timestamp - previous.timestamp) <= dedup_window:
                    logger.info(
                        f"Dropped duplicate {interaction.interaction_type.value} from "
                        f"{interaction.user_id} on {interaction.item_id}"
                    )
                    return False
            if self.storage_dir is not None:
                self._persist(interaction)
            self._insert(interaction)
        return True

    def record_payload(self, user_id: str, payload: InteractionPayload, dedup_window: Optional[timedelta] = None) -> bool:
        """Validate a client payload and append it.

        Raises:
            ValidationError: Malformed payload, unknown type or unknown item
        """
        if not payload.validate():
            raise ValidationError("Malformed interaction payload")
        interaction = Interaction(
            user_id=user_id,
            item_id=payload.item_id,
            interaction_type=payload.type,
            timestamp=payload.client_timestamp(),
            item_type=payload.item_type,
            metadata=payload.meta,
        )
        return self.record(interaction, dedup_window=dedup_window)

    def query(
        self,
        user_id: Optional[str] = None,
        item_id: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> Iterator[Interaction]:
        """Iterate interactions ordered by timestamp ascending.

        The result is a lazy iterator over a snapshot taken when iteration
        starts; calling ``query`` again yields the same sequence for the same
        stored state.
        """
        since_utc = parse_datetime(since) if since else None
        for ts, _, interaction in self._snapshot(item_id):
            if since_utc is not None and ts < since_utc:
                continue
            if user_id is not None and interaction.user_id != user_id:
                continue
            yield interaction

    def _last_unlocked(
        self, user_id: str, item_id: str, interaction_type: InteractionType
    ) -> Optional[Interaction]:
        for _, _, interaction in reversed(self._by_item.get(item_id, ())):
            if interaction.user_id == user_id and interaction.interaction_type is interaction_type:
                return interaction
        return None

    def last_interaction(
        self, user_id: str, item_id: str, interaction_type: InteractionType
    ) -> Optional[Interaction]:
        """Most recent interaction of one type by one user on one item."""
        with self._lock_for(item_id):
            return self._last_unlocked(user_id, item_id, InteractionType(interaction_type))

    def get_stats(self, user_id: str) -> Dict[str, int]:
        """Get interaction counts by type for a user."""
        stats: Dict[str, int] = {}
        for interaction in self.query(user_id=user_id):
            key = interaction.interaction_type.value
            stats[key] = stats.get(key, 0) + 1
        return stats

    def __len__(self) -> int:
        return sum(1 for _ in self.query())
