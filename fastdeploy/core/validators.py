"""Input validators for deployment fields.

Each validator is a total predicate over a single string. None of them
strip or normalise input; callers pass exactly what the user typed.
"""
import re

_DIGITS = re.compile(r"[0-9]+")
_SIGNED_DIGITS = re.compile(r"-?[0-9]+")
_PERCENTAGE = re.compile(r"([0-9]{1,3})%")
_CODE_NAME = re.compile(r"[A-Za-z0-9_][A-Za-z0-9_.-]*")
_DOMAIN_NAME = re.compile(r"[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}")
_HTTPS_REPO = re.compile(r"https://github\.com/[^/\s]+/[^/\s]+?(\.git)?")
_SSH_REPO = re.compile(r"git@github\.com:[^/\s]+/[^/\s]+?(\.git)?")
_IDENT = r"[A-Za-z_][A-Za-z0-9_]*"
_MODULE_REFERENCE = re.compile(rf"{_IDENT}(\.{_IDENT})*:{_IDENT}")
_MEMORY_SIZE = re.compile(r"[0-9]+[KMG]")

MIN_PORT = 1024
MAX_PORT = 65535


def is_port(value: str) -> bool:
    """Unprivileged TCP port, 1024-65535."""
    return bool(_DIGITS.fullmatch(value)) and MIN_PORT <= int(value) <= MAX_PORT


def is_positive_integer(value: str) -> bool:
    """Plain decimal digits with a value above zero."""
    return bool(_DIGITS.fullmatch(value)) and int(value) > 0


def is_percentage(value: str) -> bool:
    """Percentage of one CPU core, e.g. ``80%``."""
    match = _PERCENTAGE.fullmatch(value)
    return bool(match) and 0 <= int(match.group(1)) <= 100


def is_nice_value(value: str) -> bool:
    """Scheduling niceness in [-20, 19]."""
    return bool(_SIGNED_DIGITS.fullmatch(value)) and -20 <= int(value) <= 19


def is_code_name(value: str) -> bool:
    """System-safe application key used for user, unit, site and directory names.

    Must start with a letter, digit or underscore so it can never be read as
    an option or resolve to the apps directory itself.
    """
    return bool(_CODE_NAME.fullmatch(value)) and ".." not in value


def is_domain_name(value: str) -> bool:
    """Pragmatic ``label.label.tld`` check, not RFC complete."""
    return bool(_DOMAIN_NAME.fullmatch(value))


def is_not_empty(value: str) -> bool:
    return len(value) > 0


def is_repo_url(value: str) -> bool:
    """GitHub repository in HTTPS or SSH form."""
    return bool(_HTTPS_REPO.fullmatch(value) or _SSH_REPO.fullmatch(value))


def is_https_url(value: str) -> bool:
    return value.startswith("https://")


def is_module_reference(value: str) -> bool:
    """``package.module:attribute`` reference to the ASGI application."""
    return bool(_MODULE_REFERENCE.fullmatch(value))


def is_memory_size(value: str) -> bool:
    """systemd memory size with a K, M or G suffix."""
    return bool(_MEMORY_SIZE.fullmatch(value))


def is_gzip_level(value: str) -> bool:
    return bool(_DIGITS.fullmatch(value)) and 1 <= int(value) <= 9
