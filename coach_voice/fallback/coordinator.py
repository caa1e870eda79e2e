"""
Fallback coordination.

Owns the single FallbackState. Combines capability snapshots with runtime
failures to pick an operating mode, retries recoverable failures with
exponential backoff, and persists its bookkeeping so a forced downgrade
survives a reload.
"""

import json
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional

from ..capability.assessor import CapabilityAssessor
from ..config_models import FallbackConfig
from ..interfaces.key_value_store import KeyValueStoreInterface
from ..models.data_models import (
    CapabilitySnapshot,
    ErrorCategory,
    FallbackMode,
    FallbackState,
    PermissionState,
)
from ..utils.error_handling import (
    ErrorHandler,
    ErrorLike,
    VoiceError,
    categorize_error,
    compute_backoff_delay,
)
from ..utils.logging_config import get_logger
from ..utils.timers import GenerationTimer
from . import messages
from .messages import Alternative, StatusMessage

RETRYABLE_CATEGORIES = frozenset({
    ErrorCategory.NETWORK,
    ErrorCategory.TEMPORARY,
    ErrorCategory.INITIALIZATION,
})

VOICE_MODES = frozenset({FallbackMode.NONE, FallbackMode.PARTIAL})

# Modes left only through initialize()
STICKY_MODES = frozenset({FallbackMode.PERMISSION_REQUIRED, FallbackMode.UPGRADE_REQUIRED})

FORCED_FALLBACK = 'forced_fallback'


@dataclass
class FailureOutcome:
    """What report_failure() decided."""
    category: ErrorCategory
    should_retry: bool
    mode: FallbackMode
    delay: Optional[float] = None
    attempt: int = 0
    user_message: str = ''
    technical_message: str = ''
    alternatives: List[Alternative] = field(default_factory=list)


@dataclass
class FallbackEvent:
    """Notification sent to listeners with every state change."""
    type: str
    success: bool
    message: str = ''
    alternatives: List[Alternative] = field(default_factory=list)


FallbackListener = Callable[[FallbackState, FallbackEvent], Any]


def derive_mode(snapshot: CapabilitySnapshot) -> FallbackMode:
    """
    Operating mode for a capability snapshot.

    Rules are applied in order: full voice with granted permission, then any
    usable synthesis, then denied permission, then missing engines.
    """
    if snapshot.can_use_voice_mode and snapshot.microphone_permission == PermissionState.GRANTED:
        return FallbackMode.NONE
    if snapshot.can_use_synthesis:
        return FallbackMode.PARTIAL
    if snapshot.microphone_permission == PermissionState.DENIED:
        return FallbackMode.PERMISSION_REQUIRED
    if not snapshot.recognition_supported and not snapshot.synthesis_supported:
        return FallbackMode.UPGRADE_REQUIRED
    return FallbackMode.TEXT_ONLY


class FallbackCoordinator:
    """
    Single writer of FallbackState.

    Features:
    - Category-based degradation
    - Exponential backoff retries that reassess capabilities
    - Synchronous listener notification on every mutation
    - Persistence with a staleness window
    """

    def __init__(
        self,
        assessor: CapabilityAssessor,
        store: Optional[KeyValueStoreInterface] = None,
        config: Optional[FallbackConfig] = None,
        timer_factory: Callable[[str], GenerationTimer] = GenerationTimer,
        clock: Callable[[], float] = time.time,
    ):
        self._assessor = assessor
        self._store = store
        self._config = config or FallbackConfig()
        self._clock = clock
        self._retry_timer = timer_factory("fallback-retry")
        self._state = FallbackState(timestamp=self._clock())
        self._listeners: List[FallbackListener] = []
        self._forced = False
        self._initialized = False
        self._error_handler = ErrorHandler()
        self._logger = get_logger("fallback")

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def storage_key(self) -> str:
        return f"{self._config.storage_key}:{self._config.session_id}"

    @property
    def mode(self) -> FallbackMode:
        return self._state.mode

    @property
    def retry_pending(self) -> bool:
        return self._retry_timer.pending

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def error_handler(self) -> ErrorHandler:
        return self._error_handler

    def get_state(self) -> FallbackState:
        """Copy of the current state."""
        last_error = dict(self._state.last_error) if self._state.last_error else None
        return replace(self._state, last_error=last_error)

    def is_in_fallback_mode(self) -> bool:
        return self._state.mode != FallbackMode.NONE

    def get_status_message(self) -> StatusMessage:
        return messages.status_message(self._state.mode)

    def add_listener(self, listener: FallbackListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: FallbackListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> FallbackState:
        """Assess capabilities and derive the starting mode."""
        persisted = self.load_persisted_state()
        snapshot = await self._assessor.assess()
        self._retry_timer.cancel()

        if persisted and persisted.mode == FallbackMode.TEXT_ONLY and persisted.category == ErrorCategory.RUNTIME:
            self._logger.info("Keeping persisted text-only fallback")
            self._forced = True
            self._update(
                FallbackEvent('initialized', False, 'Text mode kept from a previous session'),
                mode=FallbackMode.TEXT_ONLY,
                category=ErrorCategory.RUNTIME,
                retry_count=0,
            )
        else:
            self._forced = False
            mode = derive_mode(snapshot)
            self._update(
                FallbackEvent('initialized', mode in VOICE_MODES, messages.status_message(mode).message),
                mode=mode,
                category=self._category_for_mode(mode),
                retry_count=0,
                last_error=None,
            )

        self._initialized = True
        self._logger.info(f"Fallback initialized in mode {self._state.mode.value}")
        return self.get_state()

    def dispose(self) -> None:
        """Cancel retries, drop listeners and clear the persisted entry."""
        self._retry_timer.shutdown()
        self._listeners.clear()
        self._initialized = False
        if self._store is not None:
            try:
                self._store.remove(self.storage_key)
            except Exception as e:
                self._logger.warning(f"Failed to clear persisted fallback state: {e}")

    # ------------------------------------------------------------------
    # Failures and retries
    # ------------------------------------------------------------------

    def report_failure(self, error: ErrorLike, context: Optional[Dict[str, Any]] = None) -> FailureOutcome:
        """
        Categorize a runtime failure and decide between retrying and degrading.

        Args:
            error: VoiceError or exception from a voice component
            context: Extra details stored with last_error

        Returns:
            FailureOutcome describing the decision
        """
        voice_error = self._to_voice_error(error)
        category = categorize_error(voice_error)
        self._error_handler.record(voice_error)

        last_error = voice_error.to_dict()
        if context:
            last_error['context'] = {**last_error.get('context', {}), **context}

        state = self._state
        self._logger.warning(
            f"Voice failure [{category.value}] {voice_error.code}: {voice_error.message}"
        )

        if state.mode in STICKY_MODES or self._forced:
            self._update(
                FallbackEvent('failure_recorded', False, voice_error.message),
                last_error=last_error,
            )
            return self._outcome(category, False, voice_error)

        retryable = (
            category in RETRYABLE_CATEGORIES
            and state.retry_count < self._config.max_retries
            and voice_error.recoverable is not False
        )

        if retryable:
            delay = self._backoff(state.retry_count)
            attempt = state.retry_count + 1
            self._retry_timer.schedule(delay, self._execute_retry)
            self._logger.info(
                f"🔄 Retrying voice features in {delay:.1f}s (attempt {attempt}/{self._config.max_retries})"
            )
            alternatives = messages.alternatives_for(category)
            self._update(
                FallbackEvent('retry_scheduled', False, messages.user_message(category), alternatives),
                mode=FallbackMode.RETRY_PENDING,
                category=category,
                last_error=last_error,
            )
            return self._outcome(category, True, voice_error, delay=delay, attempt=attempt)

        if category == ErrorCategory.RUNTIME and voice_error.recoverable is not False:
            # Recorded only; a pending retry keeps running
            self._update(
                FallbackEvent('failure_recorded', False, voice_error.message),
                last_error=last_error,
            )
            return self._outcome(category, False, voice_error)

        self._retry_timer.cancel()
        mode = self._mode_for_category(category)
        alternatives = messages.alternatives_for(category)
        self._update(
            FallbackEvent('fallback', False, messages.user_message(category), alternatives),
            mode=mode,
            category=category,
            last_error=last_error,
            retry_count=0,
        )
        return self._outcome(category, False, voice_error)

    async def _execute_retry(self) -> None:
        if self._state.mode != FallbackMode.RETRY_PENDING:
            return
        generation = self._retry_timer.generation
        attempt = self._state.retry_count + 1
        self._logger.info(f"🔄 Executing retry {attempt}/{self._config.max_retries}")

        snapshot = await self._assessor.assess()
        if not self._retry_timer.is_current(generation) or self._state.mode != FallbackMode.RETRY_PENDING:
            self._logger.debug("Retry superseded while assessing")
            return

        mode = derive_mode(snapshot)
        if mode in VOICE_MODES:
            self._logger.info("✅ Voice capabilities restored")
            self._update(
                FallbackEvent('recovery', True, 'Voice features have been restored'),
                mode=mode,
                category=None,
                last_error=None,
                retry_count=0,
            )
            return

        if attempt >= self._config.max_retries:
            self._logger.warning("Max retries reached, switching to text mode")
            self._update(
                FallbackEvent(
                    'max_retries_reached', False,
                    'Voice features unavailable after multiple attempts',
                    list(messages.EXHAUSTED_ALTERNATIVES),
                ),
                mode=FallbackMode.TEXT_ONLY,
                retry_count=0,
            )
            return

        delay = self._backoff(attempt)
        self._retry_timer.schedule(delay, self._execute_retry)
        self._update(
            FallbackEvent('retry_failed', False, f"Voice features still unavailable, retrying in {delay:.1f}s"),
            retry_count=attempt,
        )

    def force_text_mode(self, reason: str = 'Manual fallback requested') -> None:
        """Unconditionally switch to text mode."""
        self._logger.info(f"📝 Forcing text mode: {reason}")
        self._retry_timer.cancel()
        self._forced = True
        self._update(
            FallbackEvent(FORCED_FALLBACK, False, reason),
            mode=FallbackMode.TEXT_ONLY,
            category=ErrorCategory.RUNTIME,
            retry_count=0,
            last_error={'type': FORCED_FALLBACK, 'message': reason, 'timestamp': self._clock()},
        )

    def reset(self) -> None:
        """Clear fallback bookkeeping and return to the mode capabilities allow."""
        self._logger.info("Resetting fallback state")
        self._retry_timer.cancel()
        self._forced = False
        snapshot = self._assessor.last_snapshot
        mode = derive_mode(snapshot) if snapshot is not None else FallbackMode.NONE
        self._update(
            FallbackEvent('reset', True, 'Fallback state has been reset'),
            mode=mode,
            category=self._category_for_mode(mode),
            retry_count=0,
            last_error=None,
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load_persisted_state(self) -> Optional[FallbackState]:
        """
        Read the persisted state.

        Returns:
            FallbackState, or None when missing, corrupt or older than state_ttl
        """
        if self._store is None:
            return None
        try:
            raw = self._store.get(self.storage_key)
        except Exception as e:
            self._logger.warning(f"Failed to read persisted fallback state: {e}")
            return None
        if raw is None:
            return None

        try:
            decoded = json.loads(raw)
            if not isinstance(decoded, dict):
                raise ValueError(f"expected a JSON object, got {type(decoded).__name__}")
            persisted = FallbackState.from_persisted(decoded)
        except (ValueError, KeyError, TypeError) as e:
            self._logger.warning(f"Discarding corrupt fallback state: {e}")
            self._remove_persisted()
            return None

        age = self._clock() - persisted.timestamp
        if age > self._config.state_ttl:
            self._logger.debug(f"Discarding stale fallback state ({age:.0f}s old)")
            self._remove_persisted()
            return None
        return persisted

    def _persist(self) -> None:
        if self._store is None:
            return
        try:
            self._store.set(self.storage_key, json.dumps(self._state.to_persisted()))
        except Exception as e:
            self._logger.warning(f"Failed to persist fallback state: {e}")

    def _remove_persisted(self) -> None:
        try:
            self._store.remove(self.storage_key)
        except Exception as e:
            self._logger.warning(f"Failed to remove persisted fallback state: {e}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _update(self, event: FallbackEvent, **changes: Any) -> None:
        previous = self._state.mode
        self._state = replace(self._state, timestamp=self._clock(), **changes)
        if self._state.mode != previous:
            self._logger.info(f"Mode {previous.value} → {self._state.mode.value} ({event.type})")
        self._persist()
        self._notify(event)

    def _notify(self, event: FallbackEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(self.get_state(), event)
            except Exception:
                self._logger.exception(f"Fallback listener failed on '{event.type}'")

    def _backoff(self, retry_count: int) -> float:
        return compute_backoff_delay(
            retry_count,
            base_delay=self._config.base_delay,
            backoff_factor=self._config.backoff_multiplier,
            max_delay=self._config.max_delay,
        )

    @staticmethod
    def _mode_for_category(category: ErrorCategory) -> FallbackMode:
        if category == ErrorCategory.PERMISSION:
            return FallbackMode.PERMISSION_REQUIRED
        if category in (ErrorCategory.COMPATIBILITY, ErrorCategory.SECURITY):
            return FallbackMode.UPGRADE_REQUIRED
        return FallbackMode.TEXT_ONLY

    @staticmethod
    def _category_for_mode(mode: FallbackMode) -> Optional[ErrorCategory]:
        if mode == FallbackMode.PERMISSION_REQUIRED:
            return ErrorCategory.PERMISSION
        if mode == FallbackMode.UPGRADE_REQUIRED:
            return ErrorCategory.COMPATIBILITY
        return None

    @staticmethod
    def _to_voice_error(error: ErrorLike) -> VoiceError:
        if isinstance(error, VoiceError):
            return error
        if error is None:
            return VoiceError(code='unknown', message='Unknown voice failure', component='fallback')
        return VoiceError.from_exception(error, component='fallback')

    def _outcome(
        self,
        category: ErrorCategory,
        should_retry: bool,
        error: VoiceError,
        delay: Optional[float] = None,
        attempt: int = 0
    ) -> FailureOutcome:
        return FailureOutcome(
            category=category,
            should_retry=should_retry,
            mode=self._state.mode,
            delay=delay,
            attempt=attempt,
            user_message=messages.user_message(category),
            technical_message=f"{error.code}: {error.message}",
            alternatives=messages.alternatives_for(category),
        )
