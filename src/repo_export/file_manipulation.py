from __future__ import annotations

import re
import stat
from pathlib import Path
from typing import TYPE_CHECKING, Any

from repo_export.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from repo_export.models import TreeNode

BINARY_SNIFF_BYTES = 4096
CONTROL_CHAR_RATIO = 0.1
_TEXT_CONTROL_BYTES = {9, 10, 13}


def is_regular_file(path: Path) -> bool:
    """Check if a file is regular (following symlinks).

    Args:
        path (Path): path to test.

    Returns:
        bool: True if the file is regular, False otherwise.
    """
    try:
        st = path.stat()
        return stat.S_ISREG(st.st_mode)
    except OSError:
        return False


def is_binary_file(path: str | Path, nbytes: int = BINARY_SNIFF_BYTES) -> bool:
    """Heuristically decide whether a file is binary from its first bytes.

    A NUL byte means binary; otherwise the file is binary when more than 10% of
    the sniffed bytes are control characters other than tab/LF/CR. Empty files
    are text. A file that cannot be read is treated as binary.

    Args:
        path (str | Path): the file to inspect
        nbytes (int, optional): how many leading bytes to inspect. Defaults to 4096.

    Returns:
        bool: True if the file should be handled as binary
    """
    try:
        with Path(path).open("rb") as f:
            chunk = f.read(nbytes)
    except OSError as e:
        logger.error("Error checking if file is binary", path=str(path), error=str(e))
        return True
    if not chunk:
        return False
    if b"\x00" in chunk:
        return True
    control = sum(1 for b in chunk if b < 32 and b not in _TEXT_CONTROL_BYTES)
    return control / len(chunk) > CONTROL_CHAR_RATIO


def read_text_file(path: str | Path) -> str:
    """Read a text file as UTF-8, replacing undecodable bytes."""
    return Path(path).read_text(encoding="utf-8", errors="replace")


def size_in_kb(size: int) -> str:
    return f"{size / 1024:.2f}"


def file_type_label(path: str | Path) -> str:
    """Upper-cased extension without the dot (``image.png`` -> ``PNG``)."""
    return Path(path).suffix.lstrip(".").upper()


_BACKTICK_RUN = re.compile(r"`{3,}")


def code_fence(content: str) -> str:
    """Return a backtick fence longer than any backtick run inside `content`."""
    longest = max((len(m.group(0)) for m in _BACKTICK_RUN.finditer(content)), default=0)
    return "`" * max(3, longest + 1)


def build_tree_lines(rel_paths: Sequence[str], root_name: str | None = None) -> list[str]:
    """Build a visual tree representation of file paths.

    Directories come before files; each group is sorted case-insensitively.

    Args:
        rel_paths (Sequence[str]): the list of file paths relative to the root, using POSIX separators (e.g. "src/main.py")
        root_name (str | None): optional first line naming the root

    Returns:
        list[str]: a list of strings representing the tree structure, suitable for printing
    """
    rels = sorted(
        {p.strip("/").replace("\\", "/") for p in rel_paths if p and p.strip()},
        key=str.lower,
    )
    tree: dict[str, Any] = {}
    for rp in rels:
        cur = tree
        parts = rp.split("/")
        for i, part in enumerate(parts):
            if i == len(parts) - 1:
                cur.setdefault("__files__", set()).add(part)
            else:
                cur = cur.setdefault(part, {})

    lines: list[str] = [root_name] if root_name else []

    def walk(node: dict[str, Any], prefix: str) -> None:
        dirs = sorted([k for k in node if k != "__files__"], key=lambda s: (s.lower(), s))
        files = sorted(node.get("__files__", set()), key=lambda s: (s.lower(), s))
        entries: list[tuple[str, str, Any]] = []
        entries.extend(("dir", d, node[d]) for d in dirs)
        entries.extend(("file", f, None) for f in files)
        for idx, (kind, name, child) in enumerate(entries):
            last = idx == len(entries) - 1
            branch = "└── " if last else "├── "
            lines.append(prefix + branch + name + ("/" if kind == "dir" else ""))
            if kind == "dir":
                ext = "    " if last else "│   "
                walk(child, prefix + ext)

    walk(tree, "")
    return lines


def render_tree_nodes(nodes: Sequence[TreeNode], prefix: str = "") -> list[str]:
    """Render an already-sorted TreeNode forest with box-drawing connectors."""
    lines: list[str] = []
    for idx, node in enumerate(nodes):
        last = idx == len(nodes) - 1
        branch = "└── " if last else "├── "
        lines.append(prefix + branch + node.name + ("/" if node.is_dir else ""))
        if node.is_dir and node.children:
            lines.extend(render_tree_nodes(node.children, prefix + ("    " if last else "│   ")))
    return lines
