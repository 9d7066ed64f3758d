"""
Character Manager: portrait fan-out for a freshly analyzed cast.

One task per character, keyed by its index, all in flight at once (the
remote service's own rate limiting is the only throttle). Each task yields
an (index, image, error) result; a single loop applies results to the store
in completion order, one index at a time. The fan-out is complete only when
every task has settled.
"""

import asyncio
from dataclasses import dataclass
from typing import List, Optional

from agents.image_agent import ImageAgent
from schemas import AspectRatio, Character, ImageData, StoryStyle
from store import ProjectStore
from utils.errors import StoryframeError
from utils.logger import get_logger

logger = get_logger("character_manager")


@dataclass
class PortraitResult:
    index: int
    image: Optional[ImageData] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.image is not None


class CharacterManager:
    """Generates and applies character portraits."""

    def __init__(self, image_agent: ImageAgent):
        self.image_agent = image_agent

    async def _render(
        self,
        index: int,
        character: Character,
        style: StoryStyle,
        aspect_ratio: AspectRatio,
    ) -> PortraitResult:
        try:
            image = await self.image_agent.generate_character_image(character, style, aspect_ratio)
            return PortraitResult(index=index, image=image)
        except StoryframeError as e:
            return PortraitResult(index=index, error=e)
        except Exception as e:
            # isolate unexpected failures to this portrait
            logger.exception(f"Unexpected error rendering portrait {index}")
            return PortraitResult(index=index, error=e)

    async def generate_all(
        self,
        store: ProjectStore,
        batch_id: int,
        style: StoryStyle,
        aspect_ratio: AspectRatio,
    ) -> List[PortraitResult]:
        """
        Render every character of batch ``batch_id`` concurrently.

        Results from a batch that has since been replaced are discarded.

        Returns:
            All results, in completion order
        """
        characters = list(store.characters)
        tasks = [
            asyncio.create_task(self._render(index, character, style, aspect_ratio))
            for index, character in enumerate(characters)
        ]

        results: List[PortraitResult] = []
        for finished in asyncio.as_completed(tasks):
            result = await finished
            results.append(result)

            if store.batch_id != batch_id:
                logger.info(f"Dropping portrait {result.index}: batch {batch_id} was replaced")
                continue

            if result.ok:
                store.update_character(result.index, image=result.image, loading=False)
            else:
                logger.warning(f"Portrait failed for {characters[result.index].name}: {result.error}")
                store.update_character(result.index, image=None, loading=False)

        failed = sum(1 for r in results if not r.ok)
        logger.info(f"Portraits settled: {len(results) - failed} ok, {failed} failed")
        return results
