"""
STORYFRAME shared constants

Single source for values used across the pipeline: model names, the style
and aspect ratio catalogues offered to the user, and gateway markers.
"""
import os

# ─── Gemini / Veo model names ─────────────────────────────
MODEL_GEMINI_PRO = "gemini-3-pro-preview"
MODEL_GEMINI_STORY = "gemini-2.5-pro"
MODEL_GEMINI_FLASH_IMAGE = "gemini-2.5-flash-image"
MODEL_VEO_FAST = "veo-3.1-fast-generate-preview"

# ─── API key ──────────────────────────────────────────────
API_KEY_ENV = os.getenv("STORYFRAME_API_KEY_ENV", "GOOGLE_API_KEY")

# ─── Visual styles (id, label) ────────────────────────────
STORY_STYLES = [
    ("pixar", "Pixar"),
    ("realistic", "Realistic"),
    ("disney", "Disney"),
    ("ghibli", "Ghibli"),
    ("anime", "Anime"),
    ("cyberpunk", "Cyberpunk"),
    ("fantasy", "Fantasy Art"),
]

# ─── Aspect ratios (label, value) ─────────────────────────
ASPECT_RATIOS = [
    ("Square (1:1)", "1:1"),
    ("Portrait (9:16)", "9:16"),
    ("Landscape (16:9)", "16:9"),
    ("Cinematic (21:9)", "21:9"),
]

# ─── Story generator catalogues ───────────────────────────
STORY_GENRES = [
    ("drama", "Drama"),
    ("fantasy", "Fantasy"),
    ("sci-fi", "Science Fiction"),
    ("romance", "Romance"),
    ("crime", "Crime"),
    ("horror", "Horror"),
    ("comedy", "Comedy"),
    ("adventure", "Adventure"),
]

WRITING_STYLES = [
    ("cartoonish", "Cartoonish"),
    ("realistic", "Realistic"),
    ("cinematic", "Cinematic"),
    ("poetic", "Poetic"),
    ("journalistic", "Journalistic"),
]

# ─── Video ────────────────────────────────────────────────
# Veo only accepts these two output ratios.
VIDEO_PORTRAIT = "9:16"
VIDEO_LANDSCAPE = "16:9"

# Substrings of gateway error messages that mean the API key is invalid,
# expired, or not allowed to use the requested model.
CREDENTIAL_ERROR_MARKERS = (
    "Requested entity was not found",
    "API_KEY_INVALID",
    "API key not valid",
    "API key expired",
    "PERMISSION_DENIED",
)

# ─── Image post-processing ────────────────────────────────
# rgba(75, 85, 99, 0.7)
PAD_BACKGROUND_RGBA = (75, 85, 99, 179)

# preset -> (PIL format, mime type, quality 0..1, extension)
DOWNLOAD_PRESETS = {
    "png": ("PNG", "image/png", 1.0, "png"),
    "jpeg-medium": ("JPEG", "image/jpeg", 0.8, "jpg"),
    "jpeg-low": ("JPEG", "image/jpeg", 0.5, "jpg"),
}

# ─── Project export ───────────────────────────────────────
PROJECT_FILENAME = "storyframe-project.json"
