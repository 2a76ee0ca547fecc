"""
State Management
Simple JSON file-based persistence for gateway health checks and stats.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from cheapalarms.config import settings
from cheapalarms.error_handler import ErrorSeverity, slack_notifier


class StateManager:
    """Manages gateway state using a JSON file"""

    def __init__(self, file_path: Optional[str] = None):
        self.file_path = Path(file_path or settings.state_file_path)

    def _load(self) -> dict:
        """
        Read the state file.

        Falls back to an empty state if the file is missing or corrupted.
        """
        if not self.file_path.exists():
            return {}

        try:
            with open(self.file_path, "r") as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}

        except (PermissionError, json.JSONDecodeError, ValueError) as e:
            logging.warning(f"State file {self.file_path} unreadable, starting empty: {e}")
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return {}
            # Notify without blocking the caller
            loop.create_task(
                slack_notifier.send_error(
                    error=e,
                    function_name="StateManager._load",
                    severity=ErrorSeverity.LOW,
                    context={
                        "file_path": str(self.file_path),
                        "fallback_used": "empty state",
                        "action": "Check file permissions and JSON validity",
                    },
                )
            )
            return {}

    def _save(self, data: dict) -> None:
        with open(self.file_path, "w") as f:
            json.dump(data, f, indent=2)

    def get_stats(self) -> dict:
        """Get all stats from state file"""
        return self._load()

    def update_stats(self, **kwargs: Any) -> None:
        """Update stats in state file"""
        data = self._load()
        data.update(kwargs)
        self._save(data)

    def get_last_health_check(self) -> Optional[dict]:
        """
        Last WordPress health poll result.

        Returns:
            {"ok", "checked_at", "details"} or None before the first poll
        """
        last = self._load().get("last_health_check")
        return last if isinstance(last, dict) else None

    def record_health_check(
        self,
        ok: bool,
        details: Any = None,
        checked_at: Optional[datetime] = None,
    ) -> dict:
        """
        Save a health poll result and bump the counters.

        Args:
            ok: Whether WordPress answered healthy
            details: Health payload, or the error message
            checked_at: Defaults to now (UTC)
        """
        checked_at = checked_at or datetime.now(timezone.utc)
        data = self._load()

        entry = {"ok": ok, "checked_at": checked_at.isoformat(), "details": details}
        data["last_health_check"] = entry
        data["total_checks"] = data.get("total_checks", 0) + 1
        if ok:
            data["last_healthy_at"] = entry["checked_at"]
            data["consecutive_failures"] = 0
        else:
            data["total_failures"] = data.get("total_failures", 0) + 1
            data["consecutive_failures"] = data.get("consecutive_failures", 0) + 1

        self._save(data)
        return entry


# Global state manager instance
state_manager = StateManager()
