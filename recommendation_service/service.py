"""
Recommendation service.

The only component external callers touch. It owns per-user sessions
(preferences, settings, cached recommendations), serializes recomputation
per user and runs the optional background refresh timer.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from .catalog import ItemCatalog
from .errors import ComputationTimeout, SessionNotFound, StaleRequestSuperseded, ValidationError
from .interaction_log import Interaction, InteractionLog, InteractionType
from .models.items import PreferenceCategory, RecommendationType
from .models.preferences import UserPreferences
from .models.scores import RecommendationResult
from .models.settings import RecommendationSettings
from .recommendations.engine import RecommendationContext, RecommendationEngine
from .recommendations.features import FeatureExtractor

logger = logging.getLogger(__name__)

# How many times a superseded refresh restarts before publishing anyway.
MAX_SUPERSEDED_RESTARTS = 3


@dataclass
class UserSession:
    """Per-user state, loaded once per session and discarded at session end."""

    user_id: str
    preferences: UserPreferences
    settings: RecommendationSettings
    started_at: datetime
    condition: threading.Condition = field(default_factory=threading.Condition, repr=False)

    # Refresh coordination, guarded by ``condition``.
    requested: int = 0
    completed: int = 0
    running: bool = False
    dirty: bool = True

    result: Optional[RecommendationResult] = None
    result_stale: bool = False
    last_refreshed: Optional[datetime] = None

    shown_total: int = 0
    shown_item_ids: set = field(default_factory=set)


@dataclass
class RecommendationStats:
    """Aggregate view of a user's current recommendations."""

    total_recommendations: int = 0
    average_score: float = 0.0
    top_categories: List[PreferenceCategory] = field(default_factory=list)
    interaction_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_recommendations": self.total_recommendations,
            "average_score": self.average_score,
            "top_categories": [c.value for c in self.top_categories],
            "interaction_rate": self.interaction_rate,
        }


class RecommendationService:
    """Session-scoped recommendation service over an item catalog and an interaction log."""

    def __init__(
        self,
        catalog: ItemCatalog,
        interaction_log: InteractionLog,
        default_settings: Optional[RecommendationSettings] = None,
        default_preferences: Optional[UserPreferences] = None,
        seed: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            catalog: Snapshot of recommendable items
            interaction_log: Append-only interaction store
            default_settings: Settings given to sessions started without explicit settings
            default_preferences: Preferences given to sessions started without explicit preferences
            seed: Seed for exploration and random cold start; None draws fresh randomness per pass
            clock: Source of "now" (UTC)
        """
        self.catalog = catalog
        self.interaction_log = interaction_log
        self.default_settings = default_settings or RecommendationSettings()
        self.default_preferences = default_preferences or UserPreferences.empty()
        self._seed = seed
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._sessions: Dict[str, UserSession] = {}
        self._sessions_lock = threading.Lock()

        self._timer_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    # Sessions -------------------------------------------------------------------

    def start_session(
        self,
        user_id: str,
        preferences: Optional[UserPreferences] = None,
        settings: Optional[RecommendationSettings] = None,
    ) -> UserSession:
        """Load a user's preferences and settings for the duration of a session."""
        if not user_id:
            raise ValidationError("user_id must be non-empty")
        session = UserSession(
            user_id=user_id,
            preferences=preferences or self.default_preferences,
            settings=settings or self.default_settings,
            started_at=self._clock(),
        )
        with self._sessions_lock:
            self._sessions[user_id] = session
        logger.info(f"Started recommendation session for {user_id}")
        return session

    def end_session(self, user_id: str) -> None:
        with self._sessions_lock:
            session = self._sessions.pop(user_id, None)
        if session is not None:
            logger.info(f"Ended recommendation session for {user_id}")

    def get_session(self, user_id: str) -> UserSession:
        with self._sessions_lock:
            session = self._sessions.get(user_id)
        if session is None:
            raise SessionNotFound(user_id)
        return session

    def _session_for(self, user_id: str) -> UserSession:
        """Existing session, or a new one with defaults for read paths."""
        with self._sessions_lock:
            session = self._sessions.get(user_id)
        return session if session is not None else self.start_session(user_id)

    def update_preferences(self, user_id: str, **changes: Any) -> UserPreferences:
        """Apply a partial preference update; invalid values leave the session untouched."""
        session = self.get_session(user_id)
        with session.condition:
            session.preferences = session.preferences.apply_updates(**changes)
            self._invalidate(session)
            return session.preferences

    def update_settings(self, user_id: str, **changes: Any) -> RecommendationSettings:
        """Apply a partial settings update; invalid values leave the session untouched."""
        session = self.get_session(user_id)
        with session.condition:
            session.settings = session.settings.apply_updates(**changes)
            self._invalidate(session)
            return session.settings

    @staticmethod
    def _invalidate(session: UserSession) -> None:
        # Caller holds the session condition. Bumping the request counter makes
        # any in-flight refresh stale so it restarts with the new inputs.
        session.requested += 1
        session.dirty = True

    # Recommendations ------------------------------------------------------------

    def _rng(self) -> random.Random:
        return random.Random(self._seed) if self._seed is not None else random.Random()

    def _compute(
        self, user_id: str, preferences: UserPreferences, settings: RecommendationSettings
    ) -> RecommendationResult:
        now = self._clock()
        features = FeatureExtractor(
            self.interaction_log,
            self.catalog.get,
            half_life_days=settings.half_life_days,
            clock=self._clock,
        )
        context = RecommendationContext(
            user_id=user_id,
            candidates=self.catalog.live_items(now),
            preferences=preferences,
            settings=settings,
            now=now,
            deadline=time.monotonic() + settings.computation_timeout_seconds,
        )
        return RecommendationEngine(features).recommend(context, rng=self._rng(), truncate=False)

    def _cached(self, session: UserSession) -> RecommendationResult:
        # Caller holds the session condition.
        if session.result is None:
            return RecommendationResult.empty(
                session.user_id, "Recommendations could not be computed right now"
            )
        return replace(session.result, stale=session.result_stale)

    def _publish(
        self,
        session: UserSession,
        generation: int,
        result: Optional[RecommendationResult],
        force: bool = False,
    ) -> None:
        # Caller holds the session condition.
        if generation != session.requested and not force:
            raise StaleRequestSuperseded(
                f"Refresh {generation} for {session.user_id} superseded by {session.requested}"
            )
        if result is not None:
            session.result = result
            session.result_stale = False
            session.last_refreshed = self._clock()
            session.dirty = False
        elif session.result is not None:
            session.result_stale = True
        session.completed = session.requested
        session.condition.notify_all()

    def refresh_recommendations(self, user_id: str) -> RecommendationResult:
        """Recompute a user's recommendations.

        Concurrent calls for the same user join the running computation and
        wait for its result. A preference, settings or catalog change arriving
        mid-computation makes the running result stale; it is discarded and
        the computation restarts so the newest inputs win. On timeout or
        failure the previous result is kept and returned.
        """
        session = self._session_for(user_id)
        with session.condition:
            if session.running:
                generation = session.requested
                wait_limit = session.settings.computation_timeout_seconds * (MAX_SUPERSEDED_RESTARTS + 1)
                give_up_at = time.monotonic() + wait_limit
                while session.completed < generation:
                    remaining = give_up_at - time.monotonic()
                    if remaining <= 0:
                        logger.warning(f"Gave up waiting for in-flight refresh of {user_id}; serving cache")
                        break
                    session.condition.wait(remaining)
                return self._cached(session)
            session.requested += 1
            session.running = True

        try:
            return self._run_refresh(session)
        finally:
            with session.condition:
                session.running = False
                session.condition.notify_all()

    def _run_refresh(self, session: UserSession) -> RecommendationResult:
        user_id = session.user_id
        for attempt in range(MAX_SUPERSEDED_RESTARTS + 1):
            with session.condition:
                generation = session.requested
                preferences = session.preferences
                settings = session.settings

            started = time.monotonic()
            result: Optional[RecommendationResult] = None
            try:
                result = self._compute(user_id, preferences, settings)
            except ComputationTimeout as e:
                logger.warning(f"{e}; keeping previous recommendations")
            except Exception as e:
                logger.error(f"Recommendation refresh failed for {user_id}: {e}", exc_info=True)

            with session.condition:
                try:
                    self._publish(session, generation, result, force=attempt == MAX_SUPERSEDED_RESTARTS)
                except StaleRequestSuperseded as e:
                    logger.debug(str(e))
                    continue
                if result is not None:
                    logger.info(
                        f"Refreshed {len(result)} recommendations for {user_id} "
                        f"in {time.monotonic() - started:.3f}s"
                    )
                return self._cached(session)

        # The last attempt always publishes.
        with session.condition:
            return self._cached(session)

    def get_recommendations(
        self,
        user_id: str,
        item_type: Optional[RecommendationType] = None,
        limit: Optional[int] = None,
    ) -> RecommendationResult:
        """Ordered recommendations for a user, optionally restricted to one item type.

        Served from the session snapshot; the snapshot is computed on first use
        and after preference or settings changes.
        """
        session = self._session_for(user_id)
        item_type = RecommendationType(item_type) if item_type is not None else None
        if limit is not None and limit < 1:
            raise ValidationError(f"limit must be at least 1, got {limit}")

        with session.condition:
            needs_refresh = session.result is None or session.dirty
        if needs_refresh:
            self.refresh_recommendations(user_id)

        with session.condition:
            cached = self._cached(session)
            limit = limit or session.settings.max_recommendations
            items = [c for c in cached.items if item_type is None or c.item.type is item_type][:limit]
            session.shown_total += len(items)
            session.shown_item_ids.update(c.item.id for c in items)

        reason = None
        if not items:
            if cached.reason:
                reason = cached.reason
            elif item_type is not None:
                reason = f"No {item_type.value} recommendations right now"
            else:
                reason = "No recommendable items are available right now"
        return RecommendationResult(
            user_id=user_id,
            items=items,
            reason=reason,
            cold_start=cached.cold_start,
            stale=cached.stale,
            generated_at=cached.generated_at,
        )

    # Interactions ---------------------------------------------------------------

    def record_interaction(
        self,
        user_id: str,
        item_id: str,
        interaction_type: InteractionType,
        metadata: Optional[Dict[str, Any]] = None,
        item_type: Optional[RecommendationType] = None,
        timestamp: Optional[datetime] = None,
    ) -> bool:
        """Forward an interaction to the log.

        Returns:
            True if recorded, False if it was collapsed into an identical
            interaction recorded within the dedup window

        Raises:
            ValidationError: Unknown interaction type or unknown item
        """
        item = self.catalog.get(item_id)
        interaction = Interaction(
            user_id=user_id,
            item_id=item_id,
            interaction_type=interaction_type,
            timestamp=timestamp,
            item_type=item_type or (item.type if item else None),
            metadata=metadata or {},
        )
        with self._sessions_lock:
            session = self._sessions.get(user_id)
        settings = session.settings if session else self.default_settings
        return self.interaction_log.record(
            interaction, dedup_window=timedelta(seconds=settings.dedup_window_seconds)
        )

    # Stats ------------------------------------------------------------------------

    def get_stats(self, user_id: str) -> RecommendationStats:
        """Aggregate counts derived from current state. Never triggers a computation."""
        with self._sessions_lock:
            session = self._sessions.get(user_id)
        if session is None:
            return RecommendationStats()

        with session.condition:
            current = list(session.result.items[: session.settings.max_recommendations]) if session.result else []
            shown_total = session.shown_total
            shown_ids = set(session.shown_item_ids)
            started_at = session.started_at
            half_life = session.settings.half_life_days

        stats = RecommendationStats(total_recommendations=len(current))
        if current:
            stats.average_score = round(sum(c.score.overall for c in current) / len(current), 2)

        profile = FeatureExtractor(
            self.interaction_log, self.catalog.get, half_life_days=half_life, clock=self._clock
        ).user_profile(user_id)
        by_mass = sorted(
            ((c, m) for c, m in profile.category_mass.items() if m > 0),
            key=lambda pair: (-pair[1], pair[0].value),
        )
        if by_mass:
            stats.top_categories = [c for c, _ in by_mass[:3]]
        else:
            counts: Dict[PreferenceCategory, int] = {}
            for candidate in current:
                for category in candidate.item.categories:
                    counts[category] = counts.get(category, 0) + 1
            ranked = sorted(counts.items(), key=lambda pair: (-pair[1], pair[0].value))
            stats.top_categories = [c for c, _ in ranked[:3]]

        if shown_total:
            interactions = sum(
                1 for interaction in self.interaction_log.query(user_id=user_id, since=started_at)
                if interaction.item_id in shown_ids
            )
            stats.interaction_rate = round(interactions / shown_total, 2)
        return stats

    # Refresh timer ----------------------------------------------------------------

    def refresh_catalog(self) -> int:
        """Reload the item catalog and invalidate every session snapshot."""
        count = self.catalog.refresh()
        with self._sessions_lock:
            sessions = list(self._sessions.values())
        for session in sessions:
            with session.condition:
                self._invalidate(session)
        return count

    def refresh_due_sessions(self, now: Optional[datetime] = None) -> List[str]:
        """Refresh every session whose refresh interval has elapsed. Returns the refreshed user ids."""
        now = now or self._clock()
        with self._sessions_lock:
            sessions = list(self._sessions.values())
        refreshed = []
        for session in sessions:
            with session.condition:
                interval = session.settings.refresh_interval_minutes
                last = session.last_refreshed
            if interval <= 0:
                continue
            if last is not None and now - last < timedelta(minutes=interval):
                continue
            try:
                self.refresh_recommendations(session.user_id)
                refreshed.append(session.user_id)
            except Exception as e:
                logger.error(f"Background refresh failed for {session.user_id}: {e}", exc_info=True)
        return refreshed

    def start_auto_refresh(self, poll_seconds: float = 30.0) -> None:
        """Start the background thread that refreshes sessions on their interval."""
        if self._timer_thread is not None and self._timer_thread.is_alive():
            return
        self._stop_event.clear()

        def run() -> None:
            while not self._stop_event.wait(poll_seconds):
                refreshed = self.refresh_due_sessions()
                if refreshed:
                    logger.debug(f"Auto-refreshed {len(refreshed)} sessions")

        self._timer_thread = threading.Thread(target=run, daemon=True, name="RecommendationRefresh")
        self._timer_thread.start()
        logger.info(f"Auto refresh started (poll every {poll_seconds}s)")

    def stop(self) -> None:
        """Stop the background refresh thread."""
        self._stop_event.set()
        if self._timer_thread is not None:
            self._timer_thread.join(timeout=5)
            self._timer_thread = None
