"""
STORYFRAME CLI - Command-line interface for story-to-storyboard generation.

Flow:
- Story text (typed, or read from a PDF / text file)
- Scene count, visual style, aspect ratio
- Analysis + character portraits
- Optional scene stills and Veo clips
- Previews and the project file are written to the output folder
"""

import asyncio
import getpass
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Add parent directory to path for imports
sys.path.append(str(Path(__file__).parent.parent))

from agents import EnvCredentialProvider
from config import get_export_config, get_session_defaults
from pipeline import StoryframePipeline
from schemas import AspectRatio, StoryStyle
from utils import image_utils
from utils.constants import API_KEY_ENV, ASPECT_RATIOS, STORY_STYLES
from utils.errors import StoryframeError


def print_banner():
    """Print STORYFRAME banner."""
    banner = """
=====================================================================
   STORYFRAME
   Story -> Characters -> Scenes -> Stills -> Video
=====================================================================
"""
    print(banner)


def load_env():
    """Load environment variables from .env file."""
    load_dotenv()
    print("[OK] Environment variables loaded")


def prompt_for_key() -> str:
    """Key selection flow used when no key is set or the key was rejected."""
    print(f"\n[KEY] Enter a Google API key with Veo access ({API_KEY_ENV}).")
    return getpass.getpass("API key: ").strip()


async def select_key_async() -> str:
    return await asyncio.to_thread(prompt_for_key)


def choose(title: str, options, default: int = 0) -> int:
    """Numbered menu; returns the chosen index."""
    print(f"Options for {title}:")
    for i, label in enumerate(options, 1):
        print(f"  {i}) {label}")
    raw = input(f"Enter choice (default: {default + 1}): ").strip()
    try:
        choice = int(raw) - 1 if raw else default
    except ValueError:
        print(f"[WARNING] Invalid choice. Using {options[default]}.")
        return default
    if not 0 <= choice < len(options):
        print(f"[WARNING] Choice out of range. Using {options[default]}.")
        return default
    return choice


def get_user_input(pipeline: StoryframePipeline) -> bool:
    """
    Fill the session inputs from the terminal.

    Returns:
        False if no story could be read
    """
    print("\nLet's storyboard your story!\n")

    # Story
    print("Step 1/5: Story")
    path = input("Path to a PDF / text file (or press Enter to type the story): ").strip()
    if path:
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            print(f"[ERROR] Cannot read {path}: {e}")
            return False
        if not pipeline.load_story_document(data, path):
            print(f"[ERROR] {pipeline.store.error}")
            return False
    else:
        print("Type the story. Finish with an empty line.")
        lines = []
        while True:
            line = input()
            if not line:
                break
            lines.append(line)
        pipeline.set_story_text("\n".join(lines))

    # Notes
    print("\nStep 2/5: Notes")
    pipeline.set_notes(input("Extra instructions for the analysis (optional): ").strip())

    # Scene count
    print("\nStep 3/5: Number of scenes")
    default_scenes = get_session_defaults(pipeline.settings)["num_scenes"]
    raw = input(f"Enter number of scenes (default: {default_scenes}): ").strip()
    try:
        num_scenes = int(raw) if raw else default_scenes
        if num_scenes < 1:
            print(f"[WARNING] Scene count out of range. Using {default_scenes}.")
            num_scenes = default_scenes
    except ValueError:
        print(f"[WARNING] Invalid scene count. Using {default_scenes}.")
        num_scenes = default_scenes
    pipeline.set_num_scenes(num_scenes)

    # Style
    print("\nStep 4/5: Visual Style")
    style_id, style_label = STORY_STYLES[choose("style", [label for _, label in STORY_STYLES])]
    pipeline.set_story_style(StoryStyle(id=style_id, label=style_label))

    # Aspect ratio
    print("\nStep 5/5: Aspect Ratio")
    ratio_label, ratio_value = ASPECT_RATIOS[choose("aspect ratio", [label for label, _ in ASPECT_RATIOS])]
    pipeline.set_aspect_ratio(AspectRatio(label=ratio_label, value=ratio_value))
    return True


def print_config(pipeline: StoryframePipeline):
    """Print configuration summary."""
    store = pipeline.store
    print("\n" + "=" * 60)
    print("Configuration Summary")
    print("=" * 60)
    print(f"  Story: {len(store.story_text)} characters")
    print(f"  Notes: {store.notes or '-'}")
    print(f"  Scenes: {store.num_scenes}")
    print(f"  Style: {store.story_style.label}")
    print(f"  Aspect Ratio: {store.aspect_ratio.label}")
    print("=" * 60 + "\n")


def save_previews(pipeline: StoryframePipeline, output_dir: Path):
    """Write padded portraits and cropped stills as PNG files."""
    output_dir.mkdir(parents=True, exist_ok=True)
    for i, character in enumerate(pipeline.store.characters):
        preview = pipeline.character_preview(i)
        if preview is None:
            continue
        path = output_dir / image_utils.download_filename(character.name)
        path.write_bytes(image_utils.convert_for_download(preview).data)
        print(f"  [IMG] {path}")
    for i, scene in enumerate(pipeline.store.scenes):
        preview = pipeline.scene_preview(i)
        if preview is None:
            continue
        path = output_dir / image_utils.download_filename(f"scene-{scene.scene_number}")
        path.write_bytes(image_utils.convert_for_download(preview).data)
        print(f"  [IMG] {path}")


async def run_session(pipeline: StoryframePipeline, with_stills: bool, with_videos: bool):
    store = pipeline.store

    characters, scenes = await pipeline.analyze_and_render()
    print(f"\n[OK] {len(characters)} characters, {len(scenes)} scenes")
    for character in store.characters:
        status = "OK" if character.image else "FAILED"
        print(f"  [{status}] {character.name}: {character.description}")

    if with_stills:
        results = await asyncio.gather(
            *(pipeline.generate_scene_image(i) for i in range(len(scenes)))
        )
        for scene, ok in zip(store.scenes, results):
            print(f"  [{'OK' if ok else 'FAILED'}] Scene {scene.scene_number}: {scene.prompt}")

    if with_videos:
        for i, scene in enumerate(store.scenes):
            if scene.image is None:
                continue
            print(f"\n[VIDEO] Scene {scene.scene_number}: generating (this can take a few minutes)...")
            if await pipeline.generate_scene_video(i):
                print(f"  [OK] {store.scenes[i].video_uri}")
            else:
                print(f"  [FAILED] {store.error}")


def main():
    """Main CLI entry point."""
    print_banner()
    load_env()

    credentials = EnvCredentialProvider(selector=select_key_async)
    if not credentials.api_key():
        print(f"\n[WARNING] {API_KEY_ENV} not found in environment.")
        print("          You will be asked for a key before the first request.\n")
        os.environ[API_KEY_ENV] = prompt_for_key()

    pipeline = StoryframePipeline(credentials=credentials)
    if not get_user_input(pipeline):
        sys.exit(1)

    print_config(pipeline)

    with_stills = input("Generate scene stills? (Y/n): ").strip().lower() != "n"
    with_videos = with_stills and input("Animate scenes with Veo? (y/N): ").strip().lower() == "y"

    confirm = input("Proceed with generation? (y/n): ").strip().lower()
    if confirm != "y":
        print("[CANCELLED] Generation cancelled.")
        return

    try:
        asyncio.run(run_session(pipeline, with_stills, with_videos))

        output_dir = Path(get_export_config(pipeline.settings)["output_dir"])
        print("\nSaving previews...")
        save_previews(pipeline, output_dir)
        project_file = pipeline.save_project(str(output_dir))

        print("\n" + "=" * 60)
        print("ALL DONE! Your storyboard is ready.")
        print("=" * 60)
        print(f"Project File: {project_file}")
        print("\nNext steps:")
        print("  1. Review the images in the output folder")
        print("  2. Edit prompts and re-run scenes from the project file")
        print("\nThanks for using STORYFRAME!\n")

    except KeyboardInterrupt:
        print("\n\n[INTERRUPTED] Generation interrupted by user.")
        sys.exit(1)

    except StoryframeError as e:
        print(f"\n\n[ERROR] {e.message}")
        sys.exit(1)


def quick_run(story_text: str, **kwargs):
    """
    Quick run function for programmatic use.

    Args:
        story_text: Narrative to analyze
        **kwargs: num_scenes, style (StoryStyle), aspect_ratio (AspectRatio), notes

    Returns:
        The pipeline, with portraits settled
    """
    load_env()

    pipeline = StoryframePipeline()
    if "aspect_ratio" in kwargs:
        pipeline.set_aspect_ratio(kwargs["aspect_ratio"])
    asyncio.run(pipeline.analyze_and_render(
        story_text=story_text,
        notes=kwargs.get("notes"),
        desired_scene_count=kwargs.get("num_scenes"),
        style=kwargs.get("style"),
    ))
    return pipeline


if __name__ == "__main__":
    main()
