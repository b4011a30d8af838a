"""
Generation run state machine
aggregate -> rank -> (generate -> validate)* -> charge, one transition per step
"""

from __future__ import annotations

import asyncio
from enum import Enum
import logging
from typing import Awaitable, Callable, List, Optional, Sequence

from core import Article, FailureReason, GenerationRequest, GenerationResult, Profile, ScoredArticle
from pipeline.validation import OutputValidator
from storage.history import GenerationHistory
from storage.quota_ledger import QuotaLedger
from utils.exceptions import GenerationError, GeneratorConfigError, LedgerError, ValidationRejected


logger = logging.getLogger(__name__)

AggregateFn = Callable[[], Awaitable[Sequence[Article]]]
RankFn = Callable[[Sequence[Article], Profile], Awaitable[List[ScoredArticle]]]
GenerateFn = Callable[[Profile, Article], Awaitable[str]]


class PipelineState(str, Enum):
    IDLE = "idle"
    AGGREGATING = "aggregating"
    RANKING = "ranking"
    GENERATING = "generating"
    VALIDATING = "validating"
    NEXT_CANDIDATE = "next_candidate"
    COMMITTED = "committed"
    EXHAUSTED = "exhausted"
    # aborted without trying further candidates (misconfiguration, ledger failure)
    FAILED = "failed"


TERMINAL_STATES = frozenset({PipelineState.COMMITTED, PipelineState.EXHAUSTED, PipelineState.FAILED})


class GenerationRun:
    """
    One request's pass through the pipeline

    Each ``step()`` performs exactly one transition so tests can drive the
    run with fake collaborators and inspect it between steps. Candidates
    are tried strictly in order, one at a time. The ledger is debited only
    when entering COMMITTED, at most once per run.

    Args:
        request: user, profile and history topic
        aggregate: returns the merged article list
        rank: orders articles against the profile
        generate: produces post text for one article
        validator: rejects empty or refused output
        ledger: debited once on success
        history: receives a record after a successful debit
        generation_timeout: seconds per generator call; a timeout is retryable
    """

    def __init__(
        self,
        request: GenerationRequest,
        *,
        aggregate: AggregateFn,
        rank: RankFn,
        generate: GenerateFn,
        ledger: QuotaLedger,
        validator: Optional[OutputValidator] = None,
        history: Optional[GenerationHistory] = None,
        generation_timeout: Optional[float] = None,
    ):
        self.request = request
        self._aggregate = aggregate
        self._rank = rank
        self._generate = generate
        self.ledger = ledger
        self.validator = validator or OutputValidator()
        self.history = history
        self.generation_timeout = generation_timeout

        self.state = PipelineState.IDLE
        self.articles: List[Article] = []
        self.index = 0
        self.attempts = 0
        self.debit_calls = 0
        self.result: Optional[GenerationResult] = None
        self._output: Optional[str] = None
        self._error: Optional[Exception] = None

    @classmethod
    def from_candidates(
        cls,
        request: GenerationRequest,
        *,
        generate: GenerateFn,
        ledger: QuotaLedger,
        validator: Optional[OutputValidator] = None,
        history: Optional[GenerationHistory] = None,
        generation_timeout: Optional[float] = None,
    ) -> "GenerationRun":
        """Run over a fixed candidate list (``request.candidates``) instead of aggregating."""
        candidates = list(request.candidates)

        async def aggregate() -> List[Article]:
            return [item.article for item in candidates]

        async def rank(articles: Sequence[Article], profile: Profile) -> List[ScoredArticle]:
            return candidates

        return cls(
            request,
            aggregate=aggregate,
            rank=rank,
            generate=generate,
            ledger=ledger,
            validator=validator,
            history=history,
            generation_timeout=generation_timeout,
        )

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def candidates(self) -> List[ScoredArticle]:
        return self.request.candidates

    @property
    def current(self) -> Optional[ScoredArticle]:
        if 0 <= self.index < len(self.candidates):
            return self.candidates[self.index]
        return None

    def _finish(self, state: PipelineState, result: GenerationResult) -> PipelineState:
        self.state = state
        self.result = result
        if result.ok:
            logger.info("Run for %s committed after %d attempt(s)", self.request.user_id, result.attempts)
        else:
            logger.warning(
                "Run for %s ended %s: %s (%s)",
                self.request.user_id,
                state.value,
                result.reason.value if result.reason else "-",
                result.message,
            )
        return self.state

    def _move(self, state: PipelineState) -> PipelineState:
        logger.debug("Run for %s: %s -> %s", self.request.user_id, self.state.value, state.value)
        self.state = state
        return state

    async def step(self) -> PipelineState:
        """Perform one transition; a no-op once the run is terminal."""
        if self.state == PipelineState.IDLE:
            return self._move(PipelineState.AGGREGATING)
        if self.state == PipelineState.AGGREGATING:
            return await self._step_aggregate()
        if self.state == PipelineState.RANKING:
            return await self._step_rank()
        if self.state == PipelineState.GENERATING:
            return await self._step_generate()
        if self.state == PipelineState.VALIDATING:
            return self._step_validate()
        if self.state == PipelineState.NEXT_CANDIDATE:
            return self._step_next()
        return self.state

    async def run(self) -> GenerationResult:
        while not self.done:
            await self.step()
        return self.result

    async def _step_aggregate(self) -> PipelineState:
        self.articles = list(await self._aggregate())
        return self._move(PipelineState.RANKING)

    async def _step_rank(self) -> PipelineState:
        ranked = await self._rank(self.articles, self.request.profile)
        # fixed for the rest of the run
        self.request = self.request.model_copy(update={"candidates": list(ranked)})
        if not self.candidates:
            return self._finish(
                PipelineState.EXHAUSTED,
                GenerationResult.failure(FailureReason.NO_CANDIDATES, "no relevant articles"),
            )
        self.index = 0
        return self._move(PipelineState.GENERATING)

    async def _step_generate(self) -> PipelineState:
        candidate = self.current
        self._output = None
        self._error = None
        self.attempts += 1

        call = self._generate(self.request.profile, candidate.article)
        try:
            if self.generation_timeout:
                self._output = await asyncio.wait_for(call, timeout=self.generation_timeout)
            else:
                self._output = await call
        except asyncio.TimeoutError:
            self._error = GenerationError(
                f"generation timed out after {self.generation_timeout:.0f}s", article_url=candidate.url
            )
        except GeneratorConfigError as exc:
            if self.index == 0:
                return self._finish(
                    PipelineState.FAILED,
                    GenerationResult.failure(
                        FailureReason.GENERATOR_MISCONFIGURED, exc.message, attempts=self.attempts
                    ),
                )
            self._error = exc
        except Exception as exc:
            # any collaborator failure counts as a rejected candidate
            self._error = exc
        return self._move(PipelineState.VALIDATING)

    def _step_validate(self) -> PipelineState:
        candidate = self.current
        if self._error is not None:
            logger.warning("Candidate %d (%s) failed: %s", self.index + 1, candidate.url, self._error)
            return self._move(PipelineState.NEXT_CANDIDATE)

        try:
            text = self.validator.validate(self._output)
        except ValidationRejected as exc:
            logger.warning("Candidate %d (%s) rejected: %s", self.index + 1, candidate.url, exc.message)
            return self._move(PipelineState.NEXT_CANDIDATE)

        return self._commit(candidate, text)

    def _step_next(self) -> PipelineState:
        self.index += 1
        if self.index >= len(self.candidates):
            return self._finish(
                PipelineState.EXHAUSTED,
                GenerationResult.failure(
                    FailureReason.CANDIDATES_EXHAUSTED,
                    f"all {len(self.candidates)} candidates were refused or failed",
                    attempts=self.attempts,
                ),
            )
        return self._move(PipelineState.GENERATING)

    def _commit(self, candidate: ScoredArticle, text: str) -> PipelineState:
        if self.debit_calls:
            raise RuntimeError("ledger already debited for this run")

        user_id = self.request.user_id
        self.debit_calls += 1
        try:
            debited = self.ledger.debit(user_id)
        except LedgerError as exc:
            logger.error("Debit failed for %s after successful generation: %s", user_id, exc)
            return self._finish(
                PipelineState.FAILED,
                GenerationResult.failure(FailureReason.LEDGER_ERROR, exc.message, attempts=self.attempts),
            )

        if not debited:
            return self._finish(
                PipelineState.FAILED,
                GenerationResult.failure(
                    FailureReason.QUOTA_EXHAUSTED,
                    "quota ran out while the post was being generated",
                    attempts=self.attempts,
                ),
            )

        if self.history is not None:
            self.history.record(user_id, self.request.topic)
        return self._finish(
            PipelineState.COMMITTED,
            GenerationResult.success(text, candidate.article, attempts=self.attempts),
        )
