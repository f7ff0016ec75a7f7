# artifacts.py
# Extracts media file paths mentioned in execution output.
# Pure text processing: existence on disk is the delivery sink's concern.

from collections.abc import Iterable

from shell_pilot.models import ExecutionResult

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp")
VIDEO_EXTENSIONS = (".mp4", ".webm", ".mov", ".mkv", ".avi")

_QUOTES = "\"'"


def _strip_quotes(token: str) -> str:
    if token[:1] in _QUOTES:
        token = token[1:]
    if token[-1:] in _QUOTES:
        token = token[:-1]
    return token


def _is_path(token: str) -> bool:
    return token.startswith("/") or token.startswith("./")


def find_paths(text: str, extensions: tuple[str, ...]) -> list[str]:
    """Whitespace-separated tokens of `text` that look like paths ending in `extensions`."""
    found = []
    for word in text.split():
        token = _strip_quotes(word)
        if _is_path(token) and token.lower().endswith(extensions):
            found.append(token)
    return found


def _texts(results: Iterable[ExecutionResult]) -> Iterable[str]:
    for result in results:
        yield result.stdout
        yield result.stderr
        yield result.command


def scan(results: Iterable[ExecutionResult]) -> tuple[list[str], list[str]]:
    """
    Return ``(images, videos)`` referenced by the stdout, stderr and command
    text of `results`. Each list is deduplicated and sorted.
    """
    images: set[str] = set()
    videos: set[str] = set()
    for text in _texts(results):
        images.update(find_paths(text, IMAGE_EXTENSIONS))
        videos.update(find_paths(text, VIDEO_EXTENSIONS))
    return sorted(images), sorted(videos)


def scan_documents(results: Iterable[ExecutionResult]) -> list[str]:
    """Documents attached to results by steps that bypassed the shell."""
    return sorted({path for result in results for path in result.documents})
