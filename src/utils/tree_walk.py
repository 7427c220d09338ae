"""Generic walk over nested containers collecting string leaves.

Used by the presentation extractor, which first converts each slide into a
plain tree of dicts and lists and then gathers every non-blank string in
it.  Uploaded files are untrusted, so the walk is bounded by ``max_depth``
and is iterative rather than recursive.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

logger = structlog.get_logger(logger_name=__name__)


def collect_string_leaves(node: Any, max_depth: int = 32) -> list[str]:
    """Return every non-blank string reachable from *node*, in document order.

    Mappings contribute their values (keys are ignored), lists and tuples
    their items.  Strings are stripped.  Containers nested deeper than
    ``max_depth`` are skipped.

    >>> collect_string_leaves({"shapes": [{"text": " Title "}, {"rows": [["a", ""], ["b"]]}]})
    ['Title', 'a', 'b']
    """
    leaves: list[str] = []
    truncated = False
    # Stack of (node, depth); children are pushed in reverse to keep order.
    stack: list[tuple[Any, int]] = [(node, 0)]

    while stack:
        current, depth = stack.pop()
        if isinstance(current, str):
            text = current.strip()
            if text:
                leaves.append(text)
            continue

        if isinstance(current, Mapping):
            children = list(current.values())
        elif isinstance(current, (list, tuple)):
            children = list(current)
        else:
            continue

        if depth >= max_depth:
            truncated = True
            continue
        for child in reversed(children):
            stack.append((child, depth + 1))

    if truncated:
        logger.warning("tree_walk_depth_limit_reached", max_depth=max_depth)
    return leaves
