from __future__ import annotations

import asyncio
import logging
from collections.abc import Hashable
from dataclasses import dataclass

from backend.app.services.thought_processor import GeneratedFragment, ThoughtProcessor

LOGGER = logging.getLogger("reelmark.enrichment")

DESCRIPTION_SEPARATOR = "\n\n"

# (generation, target) a thought task was started in.
_TaskScope = tuple[int, Hashable | None]


@dataclass(frozen=True)
class EnrichmentState:
    tags: tuple[str, ...] = ()
    description: str = ""


class EnrichmentAggregator:
    """Single writer for the tags and description of one capture session.

    Each submitted thought runs as its own task; results are merged in the
    order the tasks complete. Every task remembers the scope it was started
    in: the generation, bumped by `reset()`, and the target video set with
    `retarget()`. A result that arrives after either has moved on is dropped
    instead of leaking into another video or the next session.
    """

    def __init__(self, processor: ThoughtProcessor) -> None:
        self._processor = processor
        # dict keeps first-seen order for display; membership is the set.
        self._tags: dict[str, None] = {}
        self._description = ""
        self._generation = 0
        self._target: Hashable | None = None
        self._in_flight: dict[asyncio.Task[None], _TaskScope] = {}

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def target(self) -> Hashable | None:
        return self._target

    @property
    def pending_count(self) -> int:
        current = self._current_scope()
        return sum(
            1
            for task, scope in self._in_flight.items()
            if scope == current and not task.done()
        )

    def reset(self) -> None:
        self._generation += 1
        self._target = None
        self._tags = {}
        self._description = ""

    def retarget(self, target: Hashable | None) -> None:
        """Point new thoughts at `target`; results for other targets are dropped.

        Accumulated tags and description are kept.
        """
        self._target = target

    def current_state(self) -> EnrichmentState:
        return EnrichmentState(tags=tuple(self._tags), description=self._description)

    def submit_thought(self, thought: str, video_title: str | None) -> asyncio.Task[None] | None:
        """Start processing `thought` in the background.

        Must be called from a running event loop. Returns `None` without
        issuing any call when the thought is blank or no title is known yet.
        """
        if not thought.strip():
            LOGGER.debug("rejected blank thought")
            return None
        if video_title is None or not video_title.strip():
            LOGGER.debug("rejected thought without a resolved video title")
            return None

        scope = self._current_scope()
        task = asyncio.create_task(self._process_and_merge(thought, video_title, scope))
        self._in_flight[task] = scope
        task.add_done_callback(self._forget_task)
        return task

    async def wait_for_pending(self) -> None:
        tasks = list(self._in_flight)
        if tasks:
            await asyncio.gather(*tasks)

    def merge_fragment(self, fragment: GeneratedFragment) -> None:
        for tag in fragment.tags:
            self._tags.setdefault(tag, None)
        if not fragment.description_text:
            return
        if self._description:
            self._description = f"{self._description}{DESCRIPTION_SEPARATOR}{fragment.description_text}"
        else:
            self._description = fragment.description_text

    def add_tag(self, tag: str) -> bool:
        normalized = tag.strip()
        if not normalized or normalized in self._tags:
            return False
        self._tags[normalized] = None
        return True

    def remove_tag(self, tag: str) -> bool:
        if tag not in self._tags:
            return False
        del self._tags[tag]
        return True

    def replace_description(self, description: str) -> None:
        self._description = description

    def _current_scope(self) -> _TaskScope:
        return (self._generation, self._target)

    async def _process_and_merge(self, thought: str, video_title: str, scope: _TaskScope) -> None:
        outcome = await self._processor.process(thought, video_title)
        generation, target = scope
        if generation != self._generation:
            LOGGER.info(
                "discarding thought result from a closed session generation=%s current=%s",
                generation,
                self._generation,
            )
            return
        if target != self._target:
            LOGGER.info("discarding thought result for a replaced video target=%s", target)
            return
        self.merge_fragment(outcome.value)

    def _forget_task(self, task: asyncio.Task[None]) -> None:
        self._in_flight.pop(task, None)
        if not task.cancelled() and task.exception() is not None:
            LOGGER.error("thought merge task failed", exc_info=task.exception())
