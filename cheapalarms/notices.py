"""
User-facing notices

Every settled mutation produces a Notice: a level, a title and an optional
description. The presentation layer decides how to show it (toast, banner,
CLI line); nothing here renders anything.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from cheapalarms.error_handler import (
    CheapAlarmsError,
    ErrorKind,
    PartialFailure,
    RateLimited,
    get_error_message,
)


class NoticeLevel(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    level: NoticeLevel
    title: str
    description: Optional[str] = None
    duration: float = 5.0

    def __str__(self) -> str:
        if self.description:
            return f"{self.title}\n{self.description}"
        return self.title


def plural(noun: str, count: int) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


def success_notice(title: str, description: Optional[str] = None) -> Notice:
    return Notice(NoticeLevel.SUCCESS, title, description)


def partial_notice(verb: str, noun: str, partial: PartialFailure, action: str) -> Notice:
    """
    e.g. "Deleted 2 estimates — 1 failed."

    Args:
        verb: Past tense shown in the title ("Deleted", "Restored")
        noun: Singular item noun ("estimate")
        action: Infinitive used in the description ("delete", "restore")
    """
    return Notice(
        NoticeLevel.WARNING,
        f"{verb} {plural(noun, partial.succeeded)} — {partial.failed} failed.",
        f"{plural(noun, partial.failed)} failed to {action}. "
        f"{partial.succeeded} of {partial.total} succeeded.",
        duration=6.0,
    )


def failure_notice(title: str, error: CheapAlarmsError) -> Notice:
    if isinstance(error, RateLimited):
        return rate_limit_notice(error)
    if isinstance(error, PartialFailure):
        return Notice(
            NoticeLevel.ERROR,
            title,
            "; ".join(item.get("message", "") for item in error.errors) or error.message,
        )
    if error.kind == ErrorKind.NETWORK:
        return Notice(NoticeLevel.ERROR, title, get_error_message("network"))
    return Notice(NoticeLevel.ERROR, title, error.message)


def rate_limit_notice(error: RateLimited) -> Notice:
    return Notice(
        NoticeLevel.ERROR,
        "Rate limit exceeded",
        f"Please wait {error.retry_after} seconds before trying again.",
    )
