"""Line-aligned chunking of file content."""

from __future__ import annotations

from palace_index.models.entities import Chunk

DEFAULT_MAX_LINES = 120
DEFAULT_MAX_BYTES = 8 * 1024


def chunk_content(
    content: str,
    max_lines: int = DEFAULT_MAX_LINES,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> list[Chunk]:
    """Split ``content`` into contiguous chunks of whole lines.

    A chunk is closed before the next line whenever adding that line would
    exceed ``max_lines`` lines or ``max_bytes`` UTF-8 bytes. Each line is
    charged its newline except the last one. A line that alone exceeds the
    byte budget still ends up whole in a chunk of its own, so joining the
    chunk contents with ``"\\n"`` always gives back the original content.
    """
    if not content:
        return []
    if max_lines <= 0:
        max_lines = DEFAULT_MAX_LINES
    if max_bytes <= 0:
        max_bytes = DEFAULT_MAX_BYTES

    lines = content.split("\n")
    last = len(lines) - 1
    chunks: list[Chunk] = []
    buffer: list[str] = []
    buffer_bytes = 0
    start_line = 1

    for position, line in enumerate(lines):
        line_bytes = len(line.encode("utf-8")) + (1 if position < last else 0)
        if buffer and (len(buffer) >= max_lines or buffer_bytes + line_bytes > max_bytes):
            chunks.append(_make_chunk(len(chunks), start_line, buffer))
            start_line += len(buffer)
            buffer = []
            buffer_bytes = 0
        buffer.append(line)
        buffer_bytes += line_bytes

    if buffer:
        chunks.append(_make_chunk(len(chunks), start_line, buffer))
    return chunks


def _make_chunk(index: int, start_line: int, lines: list[str]) -> Chunk:
    return Chunk(
        index=index,
        start_line=start_line,
        end_line=start_line + len(lines) - 1,
        content="\n".join(lines),
    )


__all__ = ["chunk_content", "DEFAULT_MAX_LINES", "DEFAULT_MAX_BYTES"]
