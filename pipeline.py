from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

# Make imports work whether this file is imported as part of a package (relative) or top-level
try:
    from . import config  # package import
    from .agents.sdk import GenerationError, GenerativeClient
    from .agents.summary_agent import build_repair_prompts, build_summary_prompts
    from .agents.tools import ParseFailure, coerce_summary
    from .storage.feedback_store import FeedbackStore
except Exception:
    import config  # top-level import
    from agents.sdk import GenerationError, GenerativeClient
    from agents.summary_agent import build_repair_prompts, build_summary_prompts
    from agents.tools import ParseFailure, coerce_summary
    from storage.feedback_store import FeedbackStore


def _log(log_path: Optional[str], msg: str) -> None:
    if not log_path:
        return
    ts = datetime.utcnow().strftime("%H:%M:%S")
    try:
        with open(log_path, "a", encoding="utf-8") as f:
            f.write(f"[{ts}] {msg}\n")
    except OSError:
        pass


class PipelineState(str, Enum):
    FETCHING = "FETCHING"
    PROMPTING = "PROMPTING"
    GENERATING = "GENERATING"
    PARSING = "PARSING"
    REPAIRING = "REPAIRING"
    DONE = "DONE"
    EMPTY = "EMPTY"
    FAILED = "FAILED"


GENERATION_ERROR = "GenerationError"
UNREPAIRABLE_OUTPUT = "UnrepairableOutput"


@dataclass
class SummaryDone:
    data: Dict[str, Any]
    raw_text: str
    model_calls: int
    repaired: bool = False
    states: List[PipelineState] = field(default_factory=list)


@dataclass
class SummaryEmpty:
    model_calls: int = 0
    states: List[PipelineState] = field(default_factory=list)


@dataclass
class SummaryFailed:
    kind: str
    message: str
    raw_text: str = ""
    parse_error: Optional[str] = None
    model_calls: int = 0
    states: List[PipelineState] = field(default_factory=list)


SummaryOutcome = Union[SummaryDone, SummaryEmpty, SummaryFailed]


class SummaryPipeline:
    """Fetch recent feedback, prompt the model, coerce its reply into a summary.

    At most two model calls per run: the first generation and a single repair.
    Generation failures are not repaired. Every run returns a SummaryOutcome;
    model and parse errors never propagate to the caller.
    """

    def __init__(
        self,
        store: FeedbackStore,
        client: GenerativeClient,
        *,
        limit: int = config.SUMMARY_ITEM_LIMIT,
        window_hours: int = config.SUMMARY_WINDOW_HOURS,
        clock: Optional[Callable[[], datetime]] = None,
        log_path: Optional[str] = None,
    ):
        self.store = store
        self.client = client
        self.limit = limit
        self.window_hours = window_hours
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.log_path = log_path

    def _call(self, system: str, user: str) -> str:
        t0 = time.time()
        try:
            text = self.client.generate(system, user)
        except GenerationError:
            raise
        except Exception as e:
            raise GenerationError(str(e) or type(e).__name__) from e
        _log(self.log_path, f"Model response in {time.time()-t0:.2f}s ({len(text or '')} chars).")
        return "" if text is None else str(text)

    def run(self) -> SummaryOutcome:
        states: List[PipelineState] = [PipelineState.FETCHING]
        records = self.store.query_recent(self.limit)
        _log(self.log_path, f"Fetched {len(records)} feedback record(s) (limit={self.limit}).")
        if not records:
            states.append(PipelineState.EMPTY)
            _log(self.log_path, "No feedback to summarize.")
            return SummaryEmpty(states=states)

        states.append(PipelineState.PROMPTING)
        system, user = build_summary_prompts(records, now=self.clock(), window_hours=self.window_hours)
        _log(self.log_path, f"Built summary prompt ({len(user)} chars).")

        states.append(PipelineState.GENERATING)
        _log(self.log_path, "Requesting summary from model...")
        try:
            raw = self._call(system, user)
        except GenerationError as e:
            states.append(PipelineState.FAILED)
            _log(self.log_path, f"Error: model call failed: {e}")
            return SummaryFailed(kind=GENERATION_ERROR, message=str(e), model_calls=1, states=states)

        states.append(PipelineState.PARSING)
        try:
            data = coerce_summary(raw)
            states.append(PipelineState.DONE)
            _log(self.log_path, "Summary parsed on first attempt.")
            return SummaryDone(data=data, raw_text=raw, model_calls=1, states=states)
        except ParseFailure as first:
            first_error = first
        _log(self.log_path, f"First output rejected ({first_error.kind}): {first_error.reason}")

        states.append(PipelineState.REPAIRING)
        _log(self.log_path, "Retrying once with JSON repair prompt...")
        repair_system, repair_user = build_repair_prompts(raw)
        try:
            repaired_raw = self._call(repair_system, repair_user)
            data = coerce_summary(repaired_raw)
        except (GenerationError, ParseFailure) as second:
            states.append(PipelineState.FAILED)
            _log(self.log_path, f"Repair failed: {second}")
            return SummaryFailed(
                kind=UNREPAIRABLE_OUTPUT,
                message=str(second),
                raw_text=raw,
                parse_error=first_error.reason,
                model_calls=2,
                states=states,
            )
        states.append(PipelineState.DONE)
        _log(self.log_path, "Summary parsed after repair.")
        return SummaryDone(data=data, raw_text=repaired_raw, model_calls=2, repaired=True, states=states)
