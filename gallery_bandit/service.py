"""Recommendation and reward handling on top of per-user LinUCB models."""

from __future__ import annotations

import asyncio
import functools
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Callable, Sequence, TypeVar

from .bandit import (
    InMemoryModelStore,
    JsonFileModelStore,
    LinUCBModel,
    LinUCBScorer,
    ModelStore,
    RecommendationSelector,
    ScoredArm,
)
from .bandit.store import UNCONDITIONAL
from .bandit.utils import ensure_1d
from .catalog import ArmCatalog, InMemoryArmCatalog
from .config import AppConfig
from .errors import ArmNotFound, DimensionMismatch, InvalidActionKind, ModelStoreUnavailable
from .features import FeatureExtractor, feature_names
from .logging_utils import JsonlInteractionLogger, utc_timestamp
from .metrics import compute_bandit_analytics, top_features
from .types import (
    ACTION_REWARDS,
    BanditAnalytics,
    BanditArm,
    BanditContext,
    BanditRecommendation,
    BanditReward,
    Reason,
    RewardOutcome,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Update = tuple[list[float], float]


class _StoreTimeout(ModelStoreUnavailable):
    """A store call outlived its timeout and is still running in ``future``."""

    def __init__(
        self, message: str, future: "asyncio.Future[object]", operation: str
    ) -> None:
        super().__init__(message)
        self.future = future
        self.operation = operation


def _mark_retrieved(future: "asyncio.Future[object]") -> None:
    if not future.cancelled():
        future.exception()


def reward_for_action(action: str) -> float:
    """Map a user action onto the fixed reward scale."""

    if not isinstance(action, str) or action not in ACTION_REWARDS:
        raise InvalidActionKind(action)
    return ACTION_REWARDS[action]


def _unique_arms(candidates: Sequence[BanditArm]) -> list[BanditArm]:
    seen: set[str] = set()
    arms: list[BanditArm] = []
    for arm in candidates:
        if arm.artwork_id in seen:
            continue
        seen.add(arm.artwork_id)
        arms.append(arm)
    return arms


class ContextualBanditService:
    """Per-user LinUCB recommender.

    Model mutations for one user are serialized behind a per-user
    ``asyncio.Lock``; different users never contend. Store calls run in a
    worker thread and are bounded by ``store_timeout`` seconds.
    """

    def __init__(
        self,
        store: ModelStore,
        *,
        alpha: float = 0.3,
        feature_dimension: int = 20,
        catalog: ArmCatalog | None = None,
        interaction_logger: JsonlInteractionLogger | None = None,
        store_timeout: float = 0.25,
        reward_retries: int = 3,
        retry_backoff: float = 0.05,
        inverse_refresh_interval: int = 50,
        random_state: int | None = None,
        max_pending: int = 1000,
    ) -> None:
        self._store = store
        self._extractor = FeatureExtractor(feature_dimension)
        self._scorer = LinUCBScorer(alpha)
        self._selector = RecommendationSelector(random_state)
        self._catalog = catalog if catalog is not None else InMemoryArmCatalog()
        self._interaction_logger = interaction_logger
        self._store_timeout = store_timeout
        self._reward_retries = max(0, reward_retries)
        self._retry_backoff = retry_backoff
        self._refresh_interval = inverse_refresh_interval
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}
        self._max_pending = max(1, max_pending)
        self._pending: dict[str, list[Update]] = defaultdict(list)
        # Writes that timed out but may still land, with the updates they carry.
        self._inflight: dict[str, tuple["asyncio.Future[object]", list[Update]]] = {}

    @classmethod
    def from_config(
        cls, config: AppConfig, catalog: ArmCatalog | None = None
    ) -> "ContextualBanditService":
        store: ModelStore
        if config.model_store == "memory":
            store = InMemoryModelStore()
        else:
            store = JsonFileModelStore(config.model_dir)
        return cls(
            store,
            alpha=config.alpha,
            feature_dimension=config.feature_dimension,
            catalog=catalog,
            interaction_logger=JsonlInteractionLogger(config.log_path),
            store_timeout=config.store_timeout,
            reward_retries=config.reward_retries,
            inverse_refresh_interval=config.inverse_refresh_interval,
            max_pending=config.pending_reward_limit,
        )

    @property
    def alpha(self) -> float:
        return self._scorer.alpha

    @property
    def feature_dimension(self) -> int:
        return self._extractor.dimension

    @property
    def catalog(self) -> ArmCatalog:
        return self._catalog

    def extract_features(self, arm: BanditArm, context: BanditContext) -> list[float]:
        return self._extractor.extract(arm, context)

    def pending_count(self, user_id: str) -> int:
        inflight = self._inflight.get(user_id)
        return len(self._pending.get(user_id, ())) + (len(inflight[1]) if inflight else 0)

    # ------------------------------------------------------------------ store

    @asynccontextmanager
    async def _user_lock(self, user_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        self._lock_users[user_id] = self._lock_users.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[user_id] -= 1
            if not self._lock_users[user_id]:
                del self._lock_users[user_id]
                del self._locks[user_id]

    async def _call_store(
        self, operation: str, user_id: str, func: Callable[..., T], *args: object
    ) -> T:
        description = f"{operation} model for {user_id}"
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, functools.partial(func, *args))
        try:
            return await asyncio.wait_for(asyncio.shield(future), timeout=self._store_timeout)
        except asyncio.TimeoutError as exc:
            future.add_done_callback(_mark_retrieved)
            raise _StoreTimeout(f"Timed out {description}", future, operation) from exc
        except OSError as exc:
            raise ModelStoreUnavailable(f"Failed {description}: {exc}") from exc

    async def _read(self, user_id: str) -> LinUCBModel | None:
        model = await self._call_store("reading", user_id, self._store.read, user_id)
        if model is not None and model.dim != self.feature_dimension:
            raise DimensionMismatch(
                f"Stored model for {user_id} has dimension {model.dim}",
                expected=self.feature_dimension,
                actual=model.dim,
            )
        return model

    async def _write(
        self, user_id: str, model: LinUCBModel, expected_version: int | None = UNCONDITIONAL
    ) -> None:
        model.version = await self._call_store(
            "writing", user_id, self._store.write, user_id, model, expected_version
        )

    async def _replace(self, user_id: str, model: LinUCBModel) -> None:
        """Overwrite whatever is stored, conditional on the version just read.

        Caller must hold the user's lock.
        """

        current = await self._call_store("reading", user_id, self._store.read, user_id)
        await self._write(user_id, model, None if current is None else current.version)

    async def get_model(self, user_id: str) -> LinUCBModel:
        """Return the user's model, creating and persisting a fresh one if absent.

        Store faults degrade to an unsaved identity model for this call only.
        """

        try:
            model = await self._read(user_id)
            if model is None:
                async with self._user_lock(user_id):
                    model = await self._read(user_id)
                    if model is None:
                        model = LinUCBModel.identity(self.feature_dimension)
                        await self._write(user_id, model, None)
            return model
        except (ModelStoreUnavailable, DimensionMismatch):
            logger.warning(
                "Model store unavailable for user %s; using identity model",
                user_id,
                exc_info=True,
            )
            return LinUCBModel.identity(self.feature_dimension)

    async def save_model(self, user_id: str, model: LinUCBModel) -> None:
        if model.dim != self.feature_dimension:
            raise DimensionMismatch(
                f"Model dimension {model.dim} mismatched with {self.feature_dimension}",
                expected=self.feature_dimension,
                actual=model.dim,
            )
        async with self._user_lock(user_id):
            await self._replace(user_id, model)

    async def reset_model(self, user_id: str) -> LinUCBModel:
        """Replace the user's model with a fresh identity model.

        Queued updates are discarded. A timed-out write that is still in
        flight is forgotten; the version check rejects it if it lands later.
        """

        model = LinUCBModel.identity(self.feature_dimension)
        async with self._user_lock(user_id):
            self._pending.pop(user_id, None)
            self._inflight.pop(user_id, None)
            await self._replace(user_id, model)
        logger.info("Reset bandit model for user %s", user_id)
        return model

    # --------------------------------------------------------- recommendation

    def _safe_features(self, arm: BanditArm, context: BanditContext) -> list[float]:
        try:
            return self._extractor.extract(arm, context)
        except (AttributeError, TypeError, ValueError, OverflowError):
            logger.warning(
                "Malformed metadata for arm %s; using neutral features",
                getattr(arm, "artwork_id", "?"),
                exc_info=True,
            )
            return self._extractor.extract(BanditArm(artwork_id=arm.artwork_id), context)

    async def recommend(
        self,
        context: BanditContext,
        candidates: Sequence[BanditArm],
        count: int = 10,
        exploration_ratio: float = 0.2,
    ) -> list[BanditRecommendation]:
        """Rank ``candidates`` for the context's user and split exploit/explore."""

        arms = _unique_arms(candidates)
        if count <= 0 or not arms:
            return []

        model = await self.get_model(context.user_id)
        vectors = [self._safe_features(arm, context) for arm in arms]
        scores = self._scorer.score_many(vectors, model)
        scored = [
            ScoredArm(artwork_id=arm.artwork_id, features=vec, score=score)
            for arm, vec, score in zip(arms, vectors, scores)
        ]
        recommendations = self._selector.select(scored, count, exploration_ratio)
        logger.debug(
            "Recommended %d of %d candidates for user %s",
            len(recommendations),
            len(arms),
            context.user_id,
        )
        return recommendations

    # ----------------------------------------------------------------- reward

    def _resolve_features(
        self, arm_id: str, context: BanditContext, features: Sequence[float] | None
    ) -> list[float]:
        if features is not None:
            vec = ensure_1d(features)
            if vec.shape[0] != self.feature_dimension:
                raise DimensionMismatch(
                    f"Echoed features have dimension {vec.shape[0]}",
                    expected=self.feature_dimension,
                    actual=vec.shape[0],
                )
            return vec.tolist()
        arm = self._catalog.get_arm(arm_id)
        if arm is None:
            raise ArmNotFound(arm_id)
        return self._safe_features(arm, context)

    async def _apply_updates(self, user_id: str, updates: list[Update]) -> None:
        model = await self._read(user_id)
        expected = None if model is None else model.version
        if model is None:
            model = LinUCBModel.identity(self.feature_dimension)
        for vec, reward in updates:
            model = model.updated(vec, reward, refresh_interval=self._refresh_interval)
        await self._write(user_id, model, expected)

    def _trim_pending(self, user_id: str) -> None:
        queue = self._pending[user_id]
        overflow = len(queue) - self._max_pending
        if overflow > 0:
            del queue[:overflow]
            logger.error(
                "Pending queue for user %s is full; dropped %d oldest update(s)",
                user_id,
                overflow,
            )

    async def _settle_inflight(self, user_id: str) -> None:
        """Wait for a timed-out write; requeue its updates if it did not land.

        Raises ``ModelStoreUnavailable`` while that write is still running.
        """

        entry = self._inflight.get(user_id)
        if entry is None:
            return
        future, updates = entry
        done, _ = await asyncio.wait({future}, timeout=self._store_timeout)
        if not done:
            raise ModelStoreUnavailable(f"Earlier write for {user_id} is still running")
        del self._inflight[user_id]
        error = future.exception()
        if error is None:
            logger.info(
                "Timed-out write for user %s landed with %d update(s)", user_id, len(updates)
            )
            return
        logger.warning("Timed-out write for user %s did not land: %s", user_id, error)
        self._pending[user_id][:0] = updates
        self._trim_pending(user_id)

    async def _apply_with_retry(self, user_id: str, update: Update | None) -> bool:
        """Apply queued updates plus ``update``; queue ``update`` on failure.

        A write that times out keeps running and may still land, so its
        updates are held aside until it settles rather than being written a
        second time. Caller must hold the user's lock.
        """

        fresh = [update] if update is not None else []
        attempts = self._reward_retries + 1
        for attempt in range(attempts):
            batch: list[Update] = []
            try:
                await self._settle_inflight(user_id)
                batch = list(self._pending.get(user_id, ())) + fresh
                if batch:
                    await self._apply_updates(user_id, batch)
            except ModelStoreUnavailable as exc:
                if isinstance(exc, _StoreTimeout) and exc.operation == "writing":
                    self._inflight[user_id] = (exc.future, batch)
                    self._pending.pop(user_id, None)
                    fresh = []
                logger.warning(
                    "Model update for user %s failed (attempt %d/%d)",
                    user_id,
                    attempt + 1,
                    attempts,
                    exc_info=True,
                )
                if attempt < self._reward_retries:
                    await asyncio.sleep(self._retry_backoff * (2**attempt))
                continue
            self._pending.pop(user_id, None)
            if batch:
                logger.debug("Applied %d update(s) for user %s", len(batch), user_id)
            return True

        if fresh:
            self._pending[user_id].extend(fresh)
            self._trim_pending(user_id)
        logger.warning(
            "Queued reward for user %s; %d update(s) pending",
            user_id,
            self.pending_count(user_id),
        )
        return False

    async def record_reward(
        self,
        user_id: str,
        arm_id: str,
        action: str,
        context: BanditContext,
        *,
        features: Sequence[float] | None = None,
        reason: Reason | None = None,
    ) -> RewardOutcome:
        """Fold one user action into the user's model and log it.

        ``features`` echoes the vector returned with the recommendation; when
        omitted the vector is re-derived from the arm's current metadata.
        """

        reward = reward_for_action(action)
        vec = self._resolve_features(arm_id, context, features)

        async with self._user_lock(user_id):
            applied = await self._apply_with_retry(user_id, (vec, reward))
            pending = self.pending_count(user_id)

        record = BanditReward(
            user_id=user_id,
            artwork_id=arm_id,
            action=action,
            reward=reward,
            context=context,
            features=vec,
            timestamp=utc_timestamp(),
            reason=reason,
        )
        status = "applied" if applied else "queued"
        if self._interaction_logger is not None:
            await asyncio.to_thread(self._interaction_logger.log, record, status)
        return RewardOutcome(status=status, reward=record, pending=pending)

    async def flush_pending(self, user_id: str | None = None) -> int:
        """Retry queued updates; return how many were applied."""

        if user_id is not None:
            users = [user_id]
        else:
            users = list(dict.fromkeys([*self._pending, *self._inflight]))
        applied = 0
        for user in users:
            async with self._user_lock(user):
                queued = self.pending_count(user)
                if queued and await self._apply_with_retry(user, None):
                    applied += queued
        return applied

    # -------------------------------------------------------------- analytics

    async def get_bandit_analytics(
        self, user_id: str, timeframe: str = "week", now: datetime | None = None
    ) -> BanditAnalytics:
        if self._interaction_logger is None:
            return BanditAnalytics()
        try:
            records = await asyncio.to_thread(self._interaction_logger.read)
        except OSError:
            logger.exception("Could not read interaction log")
            return BanditAnalytics()

        analytics = compute_bandit_analytics(records, user_id, timeframe, now)
        if analytics.total_interactions:
            model = await self.get_model(user_id)
            analytics.top_performing_features = top_features(
                model.theta.tolist(), feature_names(self.feature_dimension)
            )
        return analytics
