"""Context budget simulation: memory flush and compaction replay.

Replays a stream of messages against the runtime's token thresholds:

- once the context passes the soft threshold, a memory flush runs (at most
  once per compaction interval; it writes memory but frees no tokens)
- once it passes the hard threshold, older history is compacted into a
  fixed-cost summary and only a recent, token-bounded window is kept

Each step is applied synchronously, so a flush or compaction is either fully
booked or not started. The async driver only suspends between steps, for
pacing and to honor pause/stop requests.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import AsyncIterator, Callable, Iterable, Iterator, Optional
import asyncio
import itertools
import logging
import random

from .models import BudgetEvent, CompactionSummary, SimulatedMessage, TimelineItem

logger = logging.getLogger(__name__)

SUMMARY_TOKENS = 5000
SPEEDS = (1, 2, 4, 8)
DEFAULT_TOKENS_PER_MESSAGE = (500, 1200, 800, 1500, 600, 2000, 900)

MESSAGE_TEMPLATES = [
    "User asked a question about the agent runtime",
    "Assistant explained how compaction works in detail",
    "Ran a browser automation tool",
    "Read a configuration file",
    "User asked to see the session history",
    "Assistant analyzed the JSONL file structure",
    "Discussed how the memory flush works",
    "Compared compaction with pruning",
    "Wrote a visualization document",
    "Committed and pushed to GitHub",
]


class BudgetConfigError(ValueError):
    """Raised for budget thresholds that cannot describe a valid run."""


@dataclass(frozen=True)
class BudgetConfig:
    """Token budget of the runtime. Fixed for the lifetime of a simulator."""
    context_window: int = 200000
    reserve_tokens: int = 16384
    keep_recent_tokens: int = 20000
    soft_threshold_tokens: int = 4000

    @property
    def hard_threshold(self) -> int:
        return self.context_window - self.reserve_tokens

    @property
    def soft_threshold(self) -> int:
        return self.hard_threshold - self.soft_threshold_tokens

    def validate(self) -> "BudgetConfig":
        for name in ('context_window', 'reserve_tokens', 'keep_recent_tokens', 'soft_threshold_tokens'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise BudgetConfigError(f"{name} must be a positive integer, got {value!r}")
        if self.reserve_tokens + self.soft_threshold_tokens >= self.context_window:
            raise BudgetConfigError(
                f"reserve_tokens + soft_threshold_tokens ({self.reserve_tokens + self.soft_threshold_tokens}) "
                f"must be less than context_window ({self.context_window})"
            )
        if self.keep_recent_tokens >= self.context_window:
            raise BudgetConfigError(
                f"keep_recent_tokens ({self.keep_recent_tokens}) must be less than "
                f"context_window ({self.context_window})"
            )
        return self

    @classmethod
    def from_dict(cls, data: dict) -> "BudgetConfig":
        """Build from camelCase (config file) or snake_case keys; missing keys use defaults."""
        values = {}
        for name, camel in (
            ('context_window', 'contextWindow'),
            ('reserve_tokens', 'reserveTokens'),
            ('keep_recent_tokens', 'keepRecentTokens'),
            ('soft_threshold_tokens', 'softThresholdTokens'),
        ):
            if camel in data:
                values[name] = data[camel]
            elif name in data:
                values[name] = data[name]
        return cls(**values)

    def to_dict(self) -> dict:
        return {
            'contextWindow': self.context_window,
            'reserveTokens': self.reserve_tokens,
            'keepRecentTokens': self.keep_recent_tokens,
            'softThresholdTokens': self.soft_threshold_tokens,
        }


class SimulationPhase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    FLUSHING = "flushing"
    COMPACTING = "compacting"
    COMPLETED = "completed"


@dataclass(frozen=True)
class MessageInput:
    """A message to replay: a label for the log and its token weight."""
    label: str
    tokens: int
    source_id: Optional[str] = None


@dataclass
class BudgetState:
    """Mutable state of one simulation run."""
    accumulated_tokens: int = 0
    messages: tuple[SimulatedMessage, ...] = ()
    flush_executed: bool = False
    compaction_count: int = 0
    flush_count: int = 0
    events: list[BudgetEvent] = field(default_factory=list)
    summaries: list[CompactionSummary] = field(default_factory=list)
    # Every summary so far, then the messages kept or added since the latest one
    compacted_view: list = field(default_factory=list)

    def events_newest_first(self) -> list[BudgetEvent]:
        return list(reversed(self.events))

    def usage_percent(self, config: BudgetConfig) -> float:
        return min(100.0, self.accumulated_tokens / config.context_window * 100)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContextBudgetSimulator:
    """
    Replays messages through the flush/compaction policy.

    Args:
        config: Token budget; validated here, so a bad config fails before any run
        step_delay: Seconds to wait after each message (scaled by speed)
        phase_delay: Extra seconds to wait after a step that flushed or compacted
        speed: Pacing multiplier; delays are divided by it
        poll_interval: Seconds between pause-flag polls
        clock: Returns the emission time of events
    """

    def __init__(
        self,
        config: Optional[BudgetConfig] = None,
        *,
        step_delay: float = 0.5,
        phase_delay: float = 1.0,
        speed: float = 1,
        poll_interval: float = 0.1,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.config = (config or BudgetConfig()).validate()
        self.step_delay = step_delay
        self.phase_delay = phase_delay
        self.poll_interval = poll_interval
        self.clock = clock
        self.set_speed(speed)
        self._listeners: list[Callable[[BudgetEvent], None]] = []
        self.reset()

    # -- controls ---------------------------------------------------------

    def reset(self) -> None:
        self.state = BudgetState()
        self._phase = SimulationPhase.IDLE
        self._paused = False
        self._stop_requested = False
        self._counter = itertools.count(1)

    @property
    def phase(self) -> SimulationPhase:
        return self._phase

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def speed(self) -> float:
        return self._speed

    def set_speed(self, speed: float) -> None:
        if isinstance(speed, bool) or not isinstance(speed, (int, float)) or speed <= 0:
            raise ValueError(f"speed must be a positive number, got {speed!r}")
        self._speed = speed

    def cycle_speed(self) -> float:
        """Advance to the next of 1x, 2x, 4x, 8x (wrapping); returns the new speed."""
        if self._speed in SPEEDS:
            self._speed = SPEEDS[(SPEEDS.index(self._speed) + 1) % len(SPEEDS)]
        else:
            self._speed = SPEEDS[0]
        return self._speed

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        self._paused = False

    def toggle_pause(self) -> bool:
        self._paused = not self._paused
        return self._paused

    def stop(self) -> None:
        """Request the run to end at the next step boundary."""
        self._stop_requested = True

    def subscribe(self, listener: Callable[[BudgetEvent], None]) -> None:
        """Call ``listener`` with every event as it is emitted."""
        self._listeners.append(listener)

    # -- bookkeeping ------------------------------------------------------

    def _emit(self, kind: str, description: str) -> BudgetEvent:
        event = BudgetEvent(
            kind=kind,
            description=description,
            emitted_at=self.clock(),
            accumulated_tokens=self.state.accumulated_tokens,
        )
        self.state.events.append(event)
        logger.debug("[%s] %s", kind, description)
        for listener in self._listeners:
            listener(event)
        return event

    def _append(self, message: MessageInput) -> None:
        state = self.state
        state.accumulated_tokens += message.tokens
        simulated = SimulatedMessage(
            index=next(self._counter),
            label=message.label,
            tokens=message.tokens,
            cumulative_tokens=state.accumulated_tokens,
            source_id=message.source_id,
        )
        state.messages = state.messages + (simulated,)
        if state.compacted_view:
            state.compacted_view.append(simulated)
        self._emit('message', f"New message #{simulated.index}: {message.label[:30]}... (+{message.tokens} tokens)")

    def _flush(self) -> None:
        self._phase = SimulationPhase.FLUSHING
        self._emit('flush', f"Memory flush triggered (soft threshold {self.config.soft_threshold:,} tokens)")
        self._emit('flush', "Running silent agent turn")
        self._emit('flush', f"Writing memory/{self.clock().date().isoformat()}.md")
        self.state.flush_executed = True
        self.state.flush_count += 1
        self._emit('flush', "Memory flush complete (NO_REPLY, not shown to the user)")
        self._phase = SimulationPhase.RUNNING

    def _kept_window(self) -> tuple[int, int]:
        """Count and tokens of the newest live messages that fit in keep_recent_tokens."""
        kept_tokens = 0
        kept_count = 0
        for message in reversed(self.state.messages):
            if message.compacted or kept_tokens + message.tokens > self.config.keep_recent_tokens:
                break
            kept_tokens += message.tokens
            kept_count += 1
        return kept_count, kept_tokens

    def _compact(self) -> None:
        state = self.state
        self._phase = SimulationPhase.COMPACTING
        number = state.compaction_count + 1
        self._emit('compact', f"Compaction #{number} triggered (hard threshold {self.config.hard_threshold:,} tokens)")

        kept_count, kept_tokens = self._kept_window()
        cut = len(state.messages) - kept_count
        tokens_before = state.accumulated_tokens

        # Copy-on-write: compacted messages are flagged, never removed
        state.messages = tuple(
            replace(m, compacted=True) if i < cut and not m.compacted else m
            for i, m in enumerate(state.messages)
        )
        summary = CompactionSummary(
            id=f"summary-{number}",
            tokens=SUMMARY_TOKENS,
            compacted_count=cut,
            compacted_tokens=tokens_before - kept_tokens,
            kept_count=kept_count,
            kept_tokens=kept_tokens,
        )
        state.summaries.append(summary)
        state.compacted_view = [*state.summaries, *state.messages[cut:]]
        state.accumulated_tokens = kept_tokens + SUMMARY_TOKENS
        state.flush_executed = False
        state.compaction_count = number

        self._emit('compact', f"Compaction complete: {cut} messages -> summary")
        self._emit('compact', f"Tokens: {tokens_before:,} -> {state.accumulated_tokens:,}")
        self._phase = SimulationPhase.RUNNING

    def _finish(self, reason: Optional[str] = None) -> list[BudgetEvent]:
        events = []
        if reason:
            events.append(self._emit('info', reason))
        self._phase = SimulationPhase.COMPLETED
        return events

    def step(self, message: MessageInput) -> list[BudgetEvent]:
        """
        Apply one message and any flush/compaction it triggers.

        Returns the events emitted by this step, in emission order.
        """
        if self._phase == SimulationPhase.COMPLETED:
            raise RuntimeError("simulation has already completed; call reset() to start over")
        self._phase = SimulationPhase.RUNNING
        start = len(self.state.events)

        self._append(message)

        state = self.state
        if state.accumulated_tokens >= self.config.soft_threshold and not state.flush_executed:
            self._flush()

        if state.accumulated_tokens >= self.config.hard_threshold:
            self._compact()

        if state.accumulated_tokens >= self.config.context_window:
            self._finish("Context window limit reached")

        return self.state.events[start:]

    # -- driver -----------------------------------------------------------

    async def stream(
        self,
        messages: Iterable[MessageInput],
        max_messages: Optional[int] = None,
    ) -> AsyncIterator[BudgetEvent]:
        """
        Run the simulation, yielding events as they are emitted.

        Pause and stop requests are checked at the top of every step, before a
        message is taken from ``messages``, so pausing never drops or reorders
        input and resuming continues with the next message.
        """
        if self._phase == SimulationPhase.COMPLETED:
            raise RuntimeError("simulation has already completed; call reset() to start over")
        self._phase = SimulationPhase.RUNNING
        self._stop_requested = False
        yield self._emit('info', "Simulation started")

        source = iter(messages)
        applied = 0
        reason = "Input exhausted"
        try:
            while True:
                if self._stop_requested:
                    reason = "Simulation stopped"
                    break
                if self._paused:
                    await asyncio.sleep(self.poll_interval)
                    continue
                if max_messages is not None and applied >= max_messages:
                    reason = f"Reached message limit ({max_messages})"
                    break
                message = next(source, None)
                if message is None:
                    break

                events = self.step(message)
                applied += 1
                for event in events:
                    yield event
                if self._phase == SimulationPhase.COMPLETED:
                    return

                delay = self.step_delay
                if any(e.kind in ('flush', 'compact') for e in events):
                    delay += self.phase_delay
                await asyncio.sleep(delay / self._speed)
        except asyncio.CancelledError:
            self._finish()
            raise

        for event in self._finish(reason):
            yield event

    async def run(
        self,
        messages: Iterable[MessageInput],
        max_messages: Optional[int] = None,
    ) -> BudgetState:
        """Run to completion and return the final state."""
        async for _ in self.stream(messages, max_messages=max_messages):
            pass
        return self.state


def simulate(
    messages: Iterable[MessageInput],
    config: Optional[BudgetConfig] = None,
    max_messages: Optional[int] = None,
    clock: Callable[[], datetime] = _utcnow,
) -> BudgetState:
    """Run a simulation without pacing delays."""
    simulator = ContextBudgetSimulator(config, step_delay=0, phase_delay=0, clock=clock)
    return asyncio.run(simulator.run(messages, max_messages=max_messages))


def synthetic_messages(
    seed: Optional[int] = None,
    weights: tuple[int, ...] = DEFAULT_TOKENS_PER_MESSAGE,
) -> Iterator[MessageInput]:
    """Endless stream of templated messages with randomly drawn token weights."""
    rng = random.Random(seed)
    for step in itertools.count():
        yield MessageInput(
            label=MESSAGE_TEMPLATES[step % len(MESSAGE_TEMPLATES)],
            tokens=rng.choice(weights),
        )


def estimate_tokens(text: str) -> int:
    """Estimate token count from text using ~4 chars per token heuristic."""
    if not text:
        return 0
    return max(1, len(text) // 4)


def _item_text(item: TimelineItem) -> str:
    content = item.content
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if not isinstance(block, dict):
                continue
            for key in ('text', 'thinking'):
                if isinstance(block.get(key), str):
                    parts.append(block[key])
            for key in ('arguments', 'input'):
                if key in block:
                    parts.append(str(block[key]))
        return '\n'.join(parts)
    if isinstance(content, dict):
        inner = content.get('content')
        return inner if isinstance(inner, str) else str(content)
    return ''


def messages_from_timeline(items: Iterable[TimelineItem]) -> Iterator[MessageInput]:
    """
    Turn a session timeline into simulator input.

    Measured token counts are used where the item has one; other items are
    weighted by an estimate from their text. Items that weigh nothing are
    skipped.
    """
    for item in items:
        tokens = item.tokens if item.tokens is not None else estimate_tokens(_item_text(item))
        if tokens <= 0:
            continue
        text = _item_text(item).strip().replace('\n', ' ')
        label = f"{item.type}: {text}" if text else item.type
        yield MessageInput(label=label, tokens=tokens, source_id=item.id)
