# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Diff utilities used to preview file edits.

`create_patch` produces a standard unified diff (including the
"No newline at end of file" marker so that patches round-trip exactly), and
`classify_lines` produces the line-by-line added / removed / unchanged view
shown to the user when asking for approval.
"""

import re
import difflib

from enum import Enum
from pydantic import BaseModel

NO_NEWLINE_MARKER = "\\ No newline at end of file"

_HUNK_HEADER = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
_LINE_PATTERN = re.compile(r"[^\n]*\n|[^\n]+")


class PatchError(ValueError):
    """Raised when a patch does not apply to the given content"""


class LineChange(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    UNCHANGED = "unchanged"


class DiffLine(BaseModel):
    change: LineChange
    text: str

    def render(self) -> str:
        prefix = {
            LineChange.ADDED: "+ ",
            LineChange.REMOVED: "- ",
            LineChange.UNCHANGED: "  ",
        }[self.change]
        return f"{prefix}{self.text}\n"


class FileDiff(BaseModel):
    path: str
    patch: str
    lines: list[DiffLine]

    @property
    def has_changes(self) -> bool:
        return any(line.change != LineChange.UNCHANGED for line in self.lines)

    def render_lines(self) -> str:
        return "".join(line.render() for line in self.lines)


def split_lines(text: str) -> list[str]:
    """Split on '\\n' only, keeping line endings.

    str.splitlines also breaks on form feeds, unicode separators etc., which
    would make patches disagree with what `apply_patch` reconstructs.
    """
    return _LINE_PATTERN.findall(text)


def create_patch(path: str, old_content: str, new_content: str, context: int = 3) -> str:
    """Generate a unified diff between two versions of a file"""
    patch_lines = []
    for line in difflib.unified_diff(
        split_lines(old_content),
        split_lines(new_content),
        fromfile=f"a/{path}",
        tofile=f"b/{path}",
        n=context,
    ):
        patch_lines.append(line)
        if not line.endswith("\n"):
            patch_lines.append(f"\n{NO_NEWLINE_MARKER}\n")
    return "".join(patch_lines)


def classify_lines(old_content: str, new_content: str) -> list[DiffLine]:
    """Per-line view of the change, on the same line boundaries as the patch"""
    old_lines = split_lines(old_content)
    new_lines = split_lines(new_content)

    result: list[DiffLine] = []
    matcher = difflib.SequenceMatcher(a=old_lines, b=new_lines, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            result.extend(
                DiffLine(change=LineChange.UNCHANGED, text=line.rstrip("\n"))
                for line in old_lines[i1:i2]
            )
            continue
        # 'replace' is shown as a removal followed by an addition
        if tag in ("replace", "delete"):
            result.extend(
                DiffLine(change=LineChange.REMOVED, text=line.rstrip("\n"))
                for line in old_lines[i1:i2]
            )
        if tag in ("replace", "insert"):
            result.extend(
                DiffLine(change=LineChange.ADDED, text=line.rstrip("\n"))
                for line in new_lines[j1:j2]
            )
    return result


def compute_diff(path: str, old_content: str, new_content: str) -> FileDiff:
    return FileDiff(
        path=path,
        patch=create_patch(path, old_content, new_content),
        lines=classify_lines(old_content, new_content),
    )


def apply_patch(patch: str, original: str) -> str:
    """Apply a unified diff produced by `create_patch` to `original`.

    Raises:
        PatchError: if a context or removed line does not match the original.
    """
    source = split_lines(original)
    patch_lines = split_lines(patch)
    result: list[str] = []
    position = 0

    i = 0
    while i < len(patch_lines) and not patch_lines[i].startswith("@@"):
        i += 1

    while i < len(patch_lines):
        match = _HUNK_HEADER.match(patch_lines[i])
        if match is None:
            raise PatchError(f"Malformed hunk header: {patch_lines[i]!r}")

        old_start = int(match.group(1))
        old_length = int(match.group(2)) if match.group(2) is not None else 1
        # An empty old range names the line *before* the insertion point
        start = old_start - 1 if old_length > 0 else old_start
        if start < position or start > len(source):
            raise PatchError(f"Hunk out of range: {patch_lines[i].strip()}")

        result.extend(source[position:start])
        position = start
        i += 1

        while i < len(patch_lines) and not patch_lines[i].startswith("@@"):
            line = patch_lines[i]
            i += 1
            if line.startswith("\\"):
                continue

            tag, body = line[0], line[1:]
            if i < len(patch_lines) and patch_lines[i].startswith("\\"):
                body = body.removesuffix("\n")

            if tag == "+":
                result.append(body)
            elif tag in (" ", "-"):
                if position >= len(source) or source[position] != body:
                    raise PatchError(f"Patch does not match original at line {position + 1}")
                if tag == " ":
                    result.append(body)
                position += 1
            else:
                raise PatchError(f"Unexpected patch line: {line!r}")

    result.extend(source[position:])
    return "".join(result)
