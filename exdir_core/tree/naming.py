"""
Object name validation policies.

A validator is a callable `(parent_directory, name) -> None` that raises
`InvalidArgumentError` for unacceptable names. It is called before anything
is created, so a rejected name never touches the filesystem.

* `none`: accept anything
* `simple`: non-empty ASCII letters, digits and underscores, not a reserved name
* `strict`: `simple`, and no sibling differing only in letter case
* `thorough`: `strict`, and portable to common host filesystems
  (no forbidden characters or device names, limited length)
"""
import re
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from ..config import LAYOUT, NamingRule
from ..errors import InvalidArgumentError
from ..util import list_entries

NameValidator = Callable[[Path, str], None]

_SIMPLE_NAME = re.compile(r"^[A-Za-z0-9_]+$")

# characters rejected by at least one of the common host filesystems
_FORBIDDEN_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')

_DEVICE_NAMES = frozenset(
    ["CON", "PRN", "AUX", "NUL"]
    + [f"COM{i}" for i in range(1, 10)]
    + [f"LPT{i}" for i in range(1, 10)]
)

MAX_NAME_LENGTH = 255
"""Shortest common limit for a single path segment (ext4, NTFS, APFS)."""


def _reject(parent: Path, name: str, reason: str):
    raise InvalidArgumentError(f"{parent}: invalid name '{name}': {reason}")


def validate_none(parent: Path, name: str) -> None:
    pass


def validate_simple(parent: Path, name: str) -> None:
    if not name:
        _reject(parent, name, "name is empty")
    if name in LAYOUT.reserved_names:
        _reject(parent, name, "name is reserved")
    if not _SIMPLE_NAME.match(name):
        _reject(parent, name, "only ASCII letters, digits and '_' are allowed")


def validate_strict(parent: Path, name: str) -> None:
    validate_simple(parent, name)
    if not Path(parent).is_dir():
        return
    lname = name.lower()
    for entry in list_entries(parent):
        if entry != name and entry.lower() == lname:
            _reject(parent, name, f"differs from existing '{entry}' only by case")


def validate_thorough(parent: Path, name: str) -> None:
    validate_strict(parent, name)
    if _FORBIDDEN_CHARS.search(name):
        _reject(parent, name, "contains characters forbidden on some filesystems")
    if name[-1] in ". ":
        _reject(parent, name, "must not end with a dot or space")
    if name.split(".")[0].upper() in _DEVICE_NAMES:
        _reject(parent, name, "is a reserved device name on Windows")
    if len(name.encode("utf-8")) > MAX_NAME_LENGTH:
        _reject(parent, name, f"longer than {MAX_NAME_LENGTH} bytes")


VALIDATORS: Dict[NamingRule, NameValidator] = {
    NamingRule.NONE: validate_none,
    NamingRule.SIMPLE: validate_simple,
    NamingRule.STRICT: validate_strict,
    NamingRule.THOROUGH: validate_thorough,
}


def get_validator(
    rule: Optional[Union[NamingRule, str, NameValidator]] = None
) -> NameValidator:
    """Return the validator for a naming rule (or the default rule if None).

    A custom callable is returned unchanged.
    """
    if rule is None:
        rule = LAYOUT.default_naming_rule
    if callable(rule) and not isinstance(rule, (str, NamingRule)):
        return rule
    try:
        return VALIDATORS[NamingRule(rule)]
    except ValueError:
        names = [r.value for r in NamingRule]
        msg = f"Unknown naming rule: {rule!r}, must be one of {names}"
        raise InvalidArgumentError(msg) from None
