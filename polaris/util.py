from typing import List
from urllib.parse import quote

# Characters that never need escaping in a gemtext link target.
LINK_SAFE = "/"


def get_path_components(path: str) -> List[str]:
    path = path.strip("/").split("/")
    path = [c for c in path if c]

    normalized: List[str] = []
    for comp in path:
        if comp == ".":
            continue
        elif comp == "..":
            if normalized:
                normalized.pop()
            else:
                raise ValueError("URL tried to traverse above root")
        else:
            normalized.append(comp)

    return normalized


def encode_link_path(path: str) -> str:
    """Percent-encode a path for use as a gemtext link target.

    Spaces, ``:``, ``?``, ``#``, brackets, ``@`` and the sub-delimiters
    are escaped; ``/`` is kept so the link stays hierarchical.
    """
    return quote(path, safe=LINK_SAFE)
