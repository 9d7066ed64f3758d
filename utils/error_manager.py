import json
import os
import datetime
from typing import Dict, Any, List

from utils.logger import get_logger

logger = get_logger("errors")


class ErrorManager:
    """
    Centralized manager for logging and retrieving gateway errors.
    """

    LOG_FILE = os.getenv("STORYFRAME_ERROR_LOG", "outputs/api_errors.log")
    MAX_ENTRIES = 100

    @classmethod
    def log_error(
        cls,
        service: str,
        error_message: str,
        details: Any = None,
        severity: str = "error"
    ):
        """
        Append an error entry to the log file.

        Args:
            service: Name of the service/agent (e.g., "ImageAgent", "VeoAPI")
            error_message: Brief error description
            details: Additional context (exception text, scope)
            severity: Error severity ("warning", "error", "critical")
        """
        entry = {
            "timestamp": datetime.datetime.now().isoformat(),
            "service": service,
            "message": error_message,
            "details": str(details) if details else None,
            "severity": severity
        }

        log_dir = os.path.dirname(cls.LOG_FILE)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        try:
            logs = []
            if os.path.exists(cls.LOG_FILE):
                try:
                    with open(cls.LOG_FILE, 'r', encoding='utf-8') as f:
                        file_content = f.read()
                        if file_content.strip():
                            logs = json.loads(file_content)
                except json.JSONDecodeError:
                    logs = []  # corrupted log, start over

            logs.append(entry)
            if len(logs) > cls.MAX_ENTRIES:
                logs = logs[-cls.MAX_ENTRIES:]

            with open(cls.LOG_FILE, 'w', encoding='utf-8') as f:
                json.dump(logs, f, indent=2, ensure_ascii=False)

            if severity == "warning":
                logger.warning(f"{service}: {error_message}")
            else:
                logger.error(f"[{severity.upper()}] {service}: {error_message}")

        except OSError as e:
            logger.critical(f"Failed to write to error log: {e}")
            logger.critical(f"Original Error: [{service}] {error_message}")

    @classmethod
    def get_recent_errors(cls, limit: int = 20) -> List[Dict]:
        """Get recent error logs, newest first."""
        if not os.path.exists(cls.LOG_FILE):
            return []

        try:
            with open(cls.LOG_FILE, 'r', encoding='utf-8') as f:
                logs = json.load(f)
                return sorted(logs, key=lambda x: x['timestamp'], reverse=True)[:limit]
        except (OSError, json.JSONDecodeError):
            return []

    @classmethod
    def clear_logs(cls):
        """Clear the error log file."""
        if os.path.exists(cls.LOG_FILE):
            os.remove(cls.LOG_FILE)
