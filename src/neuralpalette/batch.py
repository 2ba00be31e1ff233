"""
Batch processing for personalized generation.

Runs many creative generations or sentiment analyses concurrently with
bounded parallelism and progress tracking.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar

from neuralpalette.personalization.models import (
    GenerationRequest,
    PersonalizedResponse,
    SentimentResult,
)
from neuralpalette.personalization.service import PersonalizedAI
from neuralpalette.utils.logging_config import get_logger

logger = get_logger("batch")

T = TypeVar("T")


@dataclass
class BatchResult:
    """
    Result of one item in a batch.

    Attributes:
        item: The original request or text.
        result: The response (None if error).
        error: Error message if failed (None if success).
        index: Original index in the batch.
    """

    item: Any
    result: Optional[Any]
    error: Optional[str]
    index: int

    @property
    def success(self) -> bool:
        """Whether this result was successful."""
        return self.error is None


class BatchProcessor:
    """
    Process many generations concurrently.

    Example:
        >>> processor = BatchProcessor(runtime.ai, max_concurrent=5)
        >>> results = await processor.process([
        ...     GenerationRequest(artist, "Album title ideas", CreativeType.CONCEPT),
        ...     GenerationRequest(artist, "Tour poster", CreativeType.ARTWORK),
        ... ])
    """

    def __init__(self, service: PersonalizedAI, max_concurrent: int = 5) -> None:
        """
        Args:
            service: The personalized generation service.
            max_concurrent: Maximum concurrent requests (default: 5).
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.service = service
        self.max_concurrent = max_concurrent

    async def process(
        self,
        requests: Sequence[GenerationRequest],
        on_progress: Optional[Callable[[int, int], None]] = None,
        continue_on_error: bool = False,
    ) -> List[BatchResult]:
        """
        Run ``generate_creative`` for every request.

        Args:
            requests: Generation requests.
            on_progress: Called with (completed, total) after each item.
            continue_on_error: Record failures instead of raising the first.

        Returns:
            BatchResult objects in input order; ``result`` holds a
            PersonalizedResponse.
        """
        return await self._run(
            requests, self.service.generate_creative, on_progress, continue_on_error
        )

    async def analyze_sentiments(
        self,
        texts: Sequence[str],
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> List[SentimentResult]:
        """Analyze many fan messages; failures already degrade to neutral."""
        results = await self._run(texts, self.service.analyze_sentiment, on_progress, False)
        return [r.result for r in results]

    async def _run(
        self,
        items: Sequence[T],
        fn: Callable[[T], Awaitable[Any]],
        on_progress: Optional[Callable[[int, int], None]],
        continue_on_error: bool,
    ) -> List[BatchResult]:
        semaphore = asyncio.Semaphore(self.max_concurrent)
        results: List[Optional[BatchResult]] = [None] * len(items)
        completed_count = 0
        total = len(items)

        async def process_one(index: int, item: T) -> None:
            nonlocal completed_count
            async with semaphore:
                try:
                    result = await fn(item)
                    results[index] = BatchResult(item=item, result=result, error=None, index=index)
                except Exception as e:
                    if not continue_on_error:
                        raise
                    logger.warning("Batch item %d failed: %s", index, e)
                    results[index] = BatchResult(item=item, result=None, error=str(e), index=index)
                finally:
                    completed_count += 1
                    if on_progress:
                        on_progress(completed_count, total)

        tasks = [asyncio.create_task(process_one(i, item)) for i, item in enumerate(items)]
        gather_results = await asyncio.gather(*tasks, return_exceptions=True)

        if not continue_on_error:
            for gather_result in gather_results:
                if isinstance(gather_result, Exception):
                    raise gather_result

        final_results: List[BatchResult] = []
        for i, r in enumerate(results):
            if r is None:
                final_results.append(
                    BatchResult(item=items[i], result=None, error="Task did not complete", index=i)
                )
            else:
                final_results.append(r)
        return final_results


def successful(results: Sequence[BatchResult]) -> List[PersonalizedResponse]:
    """The responses of the items that succeeded, in order."""
    return [r.result for r in results if r.success]
