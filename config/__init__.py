"""
STORYFRAME Configuration Loader
"""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional

from utils.constants import (
    MODEL_GEMINI_PRO,
    MODEL_GEMINI_STORY,
    MODEL_GEMINI_FLASH_IMAGE,
    MODEL_VEO_FAST,
    PROJECT_FILENAME,
)

# 기본 설정 디렉토리
CONFIG_DIR = Path(__file__).parent


def load_settings(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load settings, merged over the defaults.

    Args:
        config_path: YAML file path (default: $STORYFRAME_CONFIG or config/settings.yaml)

    Returns:
        Settings dictionary
    """
    if config_path is None:
        config_path = os.getenv("STORYFRAME_CONFIG") or CONFIG_DIR / "settings.yaml"

    settings = get_default_settings()

    if not os.path.exists(config_path):
        return settings

    with open(config_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    return _deep_merge(settings, config)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def get_default_settings() -> Dict[str, Any]:
    """기본 설정 반환"""
    return {
        "models": {
            "analysis": MODEL_GEMINI_PRO,
            "story": MODEL_GEMINI_STORY,
            "image": MODEL_GEMINI_FLASH_IMAGE,
            "video": MODEL_VEO_FAST,
        },
        "video": {
            "poll_interval_sec": 10,
            "resolution": "720p",
        },
        "session": {
            "num_scenes": 3,
            "story_length": 1500,
        },
        "export": {
            "filename": PROJECT_FILENAME,
            "output_dir": "outputs",
        },
    }


def get_model_config(settings: Optional[Dict[str, Any]] = None) -> Dict[str, str]:
    """Model names per gateway call type."""
    settings = settings or load_settings()
    return settings["models"]


def get_video_config(settings: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Veo request/polling settings."""
    settings = settings or load_settings()
    return settings["video"]


def get_session_defaults(settings: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Initial values for a new session."""
    settings = settings or load_settings()
    return settings["session"]


def get_export_config(settings: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Project export file naming."""
    settings = settings or load_settings()
    return settings["export"]
