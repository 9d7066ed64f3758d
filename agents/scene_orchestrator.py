"""
Scene Orchestrator: user-triggered per-scene actions.

- generate_image: scene still with the cast portraits as references
- generate_video: still -> Veo clip (precondition + credential gate + polling)
- delete_image: clears the still and its video together

Each action reads the scene once when invoked and writes back only to its
own index. Writes for a batch that has been replaced in the meantime are
dropped. Typed errors propagate to the caller after the item's loading flag
has been cleared.
"""

from typing import Dict, Optional

from agents.image_agent import ImageAgent
from agents.video_agent import VideoAgent, VideoJob
from schemas import ImageData, Scene
from store import ProjectStore
from utils.errors import GenerationError, StoryframeError
from utils.logger import get_logger

logger = get_logger("scene_orchestrator")


class SceneOrchestrator:
    """
    Scene 조율 에이전트
    """

    def __init__(self, image_agent: ImageAgent, video_agent: VideoAgent):
        self.image_agent = image_agent
        self.video_agent = video_agent
        # most recent video job per scene index
        self.video_jobs: Dict[int, VideoJob] = {}

    async def generate_image(self, store: ProjectStore, index: int) -> Optional[ImageData]:
        """
        Render the still for scene ``index``.

        The prior image is kept on failure; ``video_uri`` is never touched.

        Raises:
            GenerationError: the gateway failed or returned no image
        """
        scene = store.scene_at(index)
        batch_id = store.batch_id
        store.update_scene(index, image_loading=True)

        try:
            image = await self.image_agent.generate_scene_image(scene, list(store.characters))
        except StoryframeError:
            if store.batch_id == batch_id:
                store.update_scene(index, image_loading=False)
            raise
        except Exception as e:
            if store.batch_id == batch_id:
                store.update_scene(index, image_loading=False)
            raise GenerationError(
                f"Failed to generate an image for scene {scene.scene_number}.",
                scope=f"scene {scene.scene_number}",
            ) from e

        if store.batch_id != batch_id:
            logger.info(f"Dropping scene {scene.scene_number} image: batch was replaced")
            return None

        store.update_scene(index, image=image, image_loading=False)
        logger.info(f"Scene {scene.scene_number} image stored")
        return image

    async def generate_video(self, store: ProjectStore, index: int) -> Optional[str]:
        """
        Animate scene ``index``.

        Raises:
            PreconditionError: no still yet (no gateway call is made)
            CredentialError: missing or rejected API key
            GenerationError: any other failure
        """
        scene: Scene = store.scene_at(index)
        self.video_agent.check_ready(scene)
        await self.video_agent.ensure_credential()

        batch_id = store.batch_id
        job = VideoJob(scene.scene_number)
        self.video_jobs[index] = job
        store.update_scene(index, video_loading=True)

        try:
            uri = await self.video_agent.animate(scene, job)
        finally:
            if store.batch_id == batch_id:
                store.update_scene(index, video_loading=False)

        if store.batch_id != batch_id:
            logger.info(f"Dropping scene {scene.scene_number} video: batch was replaced")
            return None

        store.update_scene(index, video_uri=uri)
        return uri

    @staticmethod
    def delete_image(store: ProjectStore, index: int) -> None:
        """Remove the still and the video derived from it."""
        store.update_scene(index, image=None, video_uri=None)
