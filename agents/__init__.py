"""
STORYFRAME Agents Package

에이전트 기반 아키텍처:
- GenerationGateway / GeminiGateway: 원격 생성 서비스 경계
- CredentialProvider: API 키 선택
- StoryAgent: 스토리 분석 (캐릭터 + 장면 추출) 및 스토리 작성
- ImageAgent: 캐릭터 초상화 / 장면 이미지 생성
- VideoAgent: 장면 이미지 -> Veo 영상 (폴링)
- CharacterManager: 초상화 동시 생성 (join-all)
- SceneOrchestrator: 장면 단위 사용자 액션
"""

from .credentials import CredentialProvider, EnvCredentialProvider
from .gateway import GeminiGateway, GenerationGateway, VideoOperation
from .story_agent import StoryAgent
from .image_agent import ImageAgent
from .video_agent import VideoAgent, VideoJob
from .character_manager import CharacterManager, PortraitResult
from .scene_orchestrator import SceneOrchestrator

__all__ = [
    "CredentialProvider",
    "EnvCredentialProvider",
    "GenerationGateway",
    "GeminiGateway",
    "VideoOperation",
    "StoryAgent",
    "ImageAgent",
    "VideoAgent",
    "VideoJob",
    "CharacterManager",
    "PortraitResult",
    "SceneOrchestrator",
]
