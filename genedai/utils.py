import os
import re
from typing import List, Sequence, TypeVar

T = TypeVar("T")


def safe_filename(name: str) -> str:
    name = re.sub(r"[^a-zA-Z0-9._-]+", "_", name)
    return name[:120]


def file_extension(name: str) -> str:
    return os.path.splitext(name)[1].lower()


def chunked(items: Sequence[T], size: int) -> List[List[T]]:
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def truncate(text: str, limit: int) -> str:
    return text[:limit] if len(text) > limit else text
