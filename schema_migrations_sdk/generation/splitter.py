"""
Batch separator handling.

A purely line-oriented splitter: a line whose trimmed text equals the
separator (case-insensitive) ends the current batch. String literals, block
comments and ``GO <count>`` repeat counts are not understood.
"""

from typing import Iterable, List

DEFAULT_SEPARATOR = "GO"


def split_batches(script: str, separator: str = DEFAULT_SEPARATOR) -> List[str]:
    """Split ``script`` into trimmed, non-blank batches."""
    if not script:
        return []

    text = script.replace("\r\n", "\n").replace("\r", "\n")
    marker = separator.strip().casefold()

    batches: List[str] = []
    current: List[str] = []

    def flush():
        batch = "\n".join(current).strip()
        if batch:
            batches.append(batch)
        current.clear()

    for line in text.split("\n"):
        if line.strip().casefold() == marker:
            flush()
        else:
            current.append(line)
    flush()

    return batches


def render_script(batches: Iterable[str], separator: str = DEFAULT_SEPARATOR) -> str:
    """Join batches into one script, each followed by a separator line."""
    return "".join(f"{batch.strip()}\n{separator}\n\n" for batch in batches if batch.strip())
