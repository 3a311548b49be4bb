"""
Tests for the append-only interaction log.
"""

import json
import threading
from datetime import datetime, timedelta, timezone

import pytest

from recommendation_service.errors import ValidationError
from recommendation_service.interaction_log import (
    Interaction,
    InteractionLog,
    InteractionPayload,
    InteractionType,
)
from recommendation_service.models.items import RecommendationType

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestInteractionTypes:
    """Test interaction type validation."""

    def test_valid_interaction_types(self):
        for interaction_type in ["view", "click", "bookmark", "register", "rate", "complete", "skip"]:
            assert InteractionType.is_valid(interaction_type)

    def test_invalid_interaction_types(self):
        for interaction_type in ["invalid", "like", "mark_read", ""]:
            assert not InteractionType.is_valid(interaction_type)

    def test_get_allowed_types(self):
        assert InteractionType.get_allowed_types() == {
            "view", "click", "bookmark", "register", "rate", "complete", "skip"
        }

    def test_positive_types(self):
        assert InteractionType.CLICK.is_positive
        assert InteractionType.BOOKMARK.is_positive
        assert not InteractionType.VIEW.is_positive
        assert not InteractionType.SKIP.is_positive


class TestInteractionModels:
    """Test interaction data models."""

    def test_payload_validation(self):
        payload = InteractionPayload(
            type="click",
            item_id="evt-1",
            meta={"source": "feed"},
            ts="2025-01-01T00:00:00Z",
            tz_offset_min=480,
        )
        assert payload.validate()

        # Invalid payload - wrong type
        assert not InteractionPayload(type=123, item_id="evt-1").validate()
        assert not InteractionPayload(type="click", item_id="").validate()

    def test_payload_offset_applies_to_naive_timestamp(self):
        # UTC+8 browsers report -480
        payload = InteractionPayload(type="view", item_id="evt-1", ts="2025-01-01T08:00:00", tz_offset_min=-480)
        assert payload.client_timestamp() == datetime(2025, 1, 1, 0, 0, tzinfo=timezone.utc)

    def test_payload_offset_ignored_for_aware_timestamp(self):
        payload = InteractionPayload(type="view", item_id="evt-1", ts="2025-01-01T08:00:00Z", tz_offset_min=-480)
        assert payload.client_timestamp() == datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc)

    def test_interaction_serialization(self):
        interaction = Interaction(
            user_id="alice",
            item_id="evt-1",
            interaction_type="rate",
            timestamp="2025-01-01T00:00:00+08:00",
            item_type="event",
            metadata={"rating": 4},
        )

        data = interaction.to_dict()
        assert data["interaction_type"] == "rate"
        assert data["item_type"] == "event"
        assert data["timestamp"] == "2024-12-31T16:00:00+00:00"

        restored = Interaction.from_dict(data)
        assert restored == interaction
        assert restored.item_type is RecommendationType.EVENT
        assert restored.rating == 4.0

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            Interaction(user_id="alice", item_id="evt-1", interaction_type="like")

    @pytest.mark.parametrize("rating", [0, 6, "five"])
    def test_rating_out_of_range_rejected(self, rating):
        with pytest.raises(ValidationError):
            Interaction(user_id="alice", item_id="evt-1", interaction_type="rate", metadata={"rating": rating})


class TestInteractionLog:
    """Test the InteractionLog class."""

    def _log(self, known=("evt-1", "evt-2", "club-1"), **kwargs):
        return InteractionLog(is_known_item=lambda item_id: item_id in known, clock=lambda: NOW, **kwargs)

    def test_record_assigns_server_timestamp(self):
        log = self._log()

        assert log.record(Interaction("alice", "evt-1", InteractionType.VIEW))

        stored = list(log.query(user_id="alice"))
        assert len(stored) == 1
        assert stored[0].timestamp == NOW

    def test_unknown_item_rejected(self):
        log = self._log()

        with pytest.raises(ValidationError):
            log.record(Interaction("alice", "missing", InteractionType.CLICK))
        assert len(log) == 0

    def test_query_orders_by_timestamp(self):
        log = self._log()
        log.record(Interaction("alice", "evt-2", "click", timestamp=NOW))
        log.record(Interaction("alice", "evt-1", "view", timestamp=NOW - timedelta(hours=2)))
        log.record(Interaction("bob", "evt-1", "click", timestamp=NOW - timedelta(hours=1)))

        ordered = [(i.user_id, i.item_id) for i in log.query()]
        assert ordered == [("alice", "evt-1"), ("bob", "evt-1"), ("alice", "evt-2")]

        # Same stored state yields the same sequence
        assert [i.item_id for i in log.query()] == [i.item_id for i in log.query()]

    def test_query_filters(self):
        log = self._log()
        log.record(Interaction("alice", "evt-1", "view", timestamp=NOW - timedelta(days=3)))
        log.record(Interaction("alice", "evt-2", "click", timestamp=NOW))
        log.record(Interaction("bob", "evt-2", "bookmark", timestamp=NOW))

        assert [i.item_id for i in log.query(user_id="alice")] == ["evt-1", "evt-2"]
        assert [i.user_id for i in log.query(item_id="evt-2")] == ["alice", "bob"]
        assert [i.item_id for i in log.query(user_id="alice", since=NOW - timedelta(days=1))] == ["evt-2"]

    def test_duplicate_within_window_dropped(self):
        log = self._log()
        window = timedelta(seconds=1)

        assert log.record(Interaction("alice", "evt-1", "click", timestamp=NOW), dedup_window=window)
        assert not log.record(
            Interaction("alice", "evt-1", "click", timestamp=NOW + timedelta(milliseconds=300)),
            dedup_window=window,
        )
        # Different type and later timestamps are not duplicates
        assert log.record(Interaction("alice", "evt-1", "bookmark", timestamp=NOW), dedup_window=window)
        assert log.record(
            Interaction("alice", "evt-1", "click", timestamp=NOW + timedelta(seconds=5)),
            dedup_window=window,
        )

        assert log.get_stats("alice") == {"click": 2, "bookmark": 1}

    def test_record_payload(self):
        log = self._log()

        assert log.record_payload("alice", InteractionPayload(type="bookmark", item_id="club-1", item_type="club"))
        with pytest.raises(ValidationError):
            log.record_payload("alice", InteractionPayload(type="bookmark", item_id=""))
        with pytest.raises(ValidationError):
            log.record_payload("alice", InteractionPayload(type="like", item_id="club-1"))

        last = log.last_interaction("alice", "club-1", InteractionType.BOOKMARK)
        assert last is not None
        assert last.item_type is RecommendationType.CLUB

    def test_concurrent_appends_are_all_kept(self):
        log = self._log()

        def worker(user_id):
            for i in range(50):
                log.record(Interaction(user_id, "evt-1", "view", timestamp=NOW + timedelta(seconds=i)))

        threads = [threading.Thread(target=worker, args=(f"user-{n}",)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(log) == 200
        timestamps = [i.timestamp for i in log.query(item_id="evt-1")]
        assert timestamps == sorted(timestamps)


class TestInteractionPersistence:
    """Test JSON-lines persistence of the log."""

    def test_interactions_survive_reload(self, tmp_path):
        log = InteractionLog(storage_dir=tmp_path, clock=lambda: NOW)
        log.record(Interaction("alice", "evt-1", "click"))
        log.record(Interaction("alice", "evt-1", "rate", metadata={"rating": 5}))

        item_file = tmp_path / "evt-1.jsonl"
        assert item_file.exists()
        lines = item_file.read_text(encoding="utf-8").splitlines()
        assert json.loads(lines[0])["interaction_type"] == "click"

        reloaded = InteractionLog(storage_dir=tmp_path)
        assert [i.interaction_type for i in reloaded.query()] == [InteractionType.CLICK, InteractionType.RATE]

    def test_corrupt_lines_skipped(self, tmp_path):
        (tmp_path / "evt-1.jsonl").write_text(
            json.dumps({"user_id": "alice", "item_id": "evt-1", "interaction_type": "view",
                        "timestamp": NOW.isoformat()}) + "\n"
            "{broken\n"
            + json.dumps({"user_id": "alice", "item_id": "evt-1", "interaction_type": "teleport"}) + "\n",
            encoding="utf-8",
        )

        log = InteractionLog(storage_dir=tmp_path)

        assert len(log) == 1

    @pytest.mark.parametrize("item_id", ["events/12", "../escaped", "..", "50%off"])
    def test_item_ids_stay_inside_storage_dir(self, tmp_path, item_id):
        storage = tmp_path / "store"
        log = InteractionLog(storage_dir=storage, clock=lambda: NOW)

        assert log.record(Interaction("alice", item_id, "view"))

        files = list(storage.iterdir())
        assert len(files) == 1
        assert files[0].parent == storage
        assert "/" not in files[0].name
        assert not (tmp_path / "escaped.jsonl").exists()

        reloaded = InteractionLog(storage_dir=storage)
        assert [i.item_id for i in reloaded.query()] == [item_id]
