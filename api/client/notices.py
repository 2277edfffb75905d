"""
Non-blocking user notices (the toast equivalent for the client flows).

A Notifier only records and logs; rendering is someone else's job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

SUCCESS = "success"
WARNING = "warning"
ERROR = "error"


@dataclass(frozen=True)
class Notice:
    title: str
    description: str = ""
    variant: str = SUCCESS


@dataclass
class Notifier:
    notices: list[Notice] = field(default_factory=list)

    def notify(self, title: str, description: str = "", *, variant: str = SUCCESS) -> Notice:
        notice = Notice(title=title, description=description, variant=variant)
        self.notices.append(notice)
        level = logging.ERROR if variant == ERROR else logging.WARNING if variant == WARNING else logging.INFO
        logger.log(level, "notice variant=%s title=%s description=%s", variant, title, description)
        return notice

    def success(self, title: str, description: str = "") -> Notice:
        return self.notify(title, description, variant=SUCCESS)

    def warning(self, title: str, description: str = "") -> Notice:
        return self.notify(title, description, variant=WARNING)

    def error(self, title: str, description: str = "") -> Notice:
        return self.notify(title, description, variant=ERROR)

    @property
    def last(self) -> Notice | None:
        return self.notices[-1] if self.notices else None
