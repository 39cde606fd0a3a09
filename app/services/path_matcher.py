# backend/app/services/path_matcher.py
import re
from dataclasses import dataclass, field
from typing import Dict, List, Tuple
from urllib.parse import unquote

PLACEHOLDER_SEGMENT_RE = re.compile(r"^\{([a-zA-Z_][a-zA-Z0-9_]*)\}$")


@dataclass
class PathMatch:
    matched: bool
    params: Dict[str, str] = field(default_factory=dict)


def split_path(path: str) -> List[str]:
    return [seg for seg in path.split("/") if seg]


def match_path_template(template: str, path: str) -> PathMatch:
    """Match a concrete path against a template like /users/{id}/orders.

    Segment counts must be equal; {name} segments capture the URL-decoded
    concrete segment, every other segment must match exactly.
    """
    t_segs = split_path(template)
    a_segs = split_path(path)
    if len(t_segs) != len(a_segs):
        return PathMatch(False)

    params: Dict[str, str] = {}
    for t_seg, a_seg in zip(t_segs, a_segs):
        m = PLACEHOLDER_SEGMENT_RE.match(t_seg)
        if m:
            params[m.group(1)] = unquote(a_seg)
        elif t_seg != a_seg:
            return PathMatch(False)
    return PathMatch(True, params)


def route_specificity(template: str) -> Tuple:
    """Sort key putting the most specific template first.

    More literal segments win; on a tie, a literal beats a placeholder at the
    first position where the two differ.
    """
    pattern = tuple(1 if PLACEHOLDER_SEGMENT_RE.match(seg) else 0 for seg in split_path(template))
    return (-pattern.count(0), pattern, template)
