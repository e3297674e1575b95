from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class AppInfo:
    version: str = field(default="", metadata={"json": "version"})
    build_id: str = field(default="", metadata={"json": "build_id"})
