from __future__ import annotations


class Formatter:
    def __init__(self, width: int) -> None:
        self.width = width


def pad(text: str, width: int) -> str:
    return text.ljust(width)
