"""Word lists: one `<name>.txt` file per list, one word per line."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_word_list(text: str) -> list[str]:
    """Unique, sorted words. Blank lines and lines starting with '#' are skipped."""
    words = {
        line.strip().upper()
        for line in text.splitlines()
        if line.strip() and not line.lstrip().startswith("#")
    }
    return sorted(words)


def load_word_lists(directory: Path) -> dict[str, list[str]]:
    """Load every `*.txt` file in `directory`, keyed by file name without extension."""
    lists: dict[str, list[str]] = {}
    for path in sorted(Path(directory).glob("*.txt")):
        lists[path.stem] = parse_word_list(path.read_text(encoding="utf-8"))
        logger.info("Loaded word list %r (%d words)", path.stem, len(lists[path.stem]))
    return lists
