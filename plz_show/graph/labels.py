"""
plz_show/graph/labels.py — Please build label parsing.

Label formats:
    //package:target            local target
    ///subrepo//package:target  subrepo (external) target
    //package:target#subtarget  target with subtarget
    :target                     target in the current package (relative)
"""

import re
from dataclasses import dataclass

_LABEL_PATTERN = re.compile(r"^(///([^/]+))?//([^:]*):([^#]+)(#(.+))?$")
_RELATIVE_LABEL_PATTERN = re.compile(r"^:([^#]+)(#(.+))?$")


@dataclass(frozen=True)
class ParsedLabel:
    package: str
    target: str
    subrepo: str | None = None
    subtarget: str | None = None
    raw: str = ""


def parse_label(label: str) -> ParsedLabel | None:
    """
    Parse a Please label into its components.

    Returns None when the string is not a label. Relative labels get an
    empty package; resolve them with resolve_label() first when the
    package matters.
    """
    relative = _RELATIVE_LABEL_PATTERN.match(label)
    if relative:
        return ParsedLabel(
            package="",
            target=relative.group(1),
            subtarget=relative.group(3),
            raw=label,
        )

    match = _LABEL_PATTERN.match(label)
    if not match:
        return None

    return ParsedLabel(
        package=match.group(3),
        target=match.group(4),
        subrepo=match.group(2),
        subtarget=match.group(6),
        raw=label,
    )


def build_label(package: str, target: str, subtarget: str | None = None) -> str:
    label = f"//{package}:{target}"
    if subtarget:
        label += f"#{subtarget}"
    return label


def resolve_label(label: str, current_package: str) -> str:
    """Expand a relative ':target' label against the package that references it."""
    if label.startswith(":"):
        return f"//{current_package}{label}"
    return label


def short_label(label: str) -> str:
    """Display name: just the target (plus '#subtarget' when present)."""
    parsed = parse_label(label)
    if parsed is None:
        return label
    if parsed.subtarget:
        return f"{parsed.target}#{parsed.subtarget}"
    return parsed.target


def is_external_label(label: str) -> bool:
    return label.startswith("///")
