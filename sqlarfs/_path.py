from ._exceptions import SqlarInvalidPathError

ROOT = "."


def validate_path(path: str) -> str:
    if not isinstance(path, str):
        raise TypeError(f"path must be str, not {type(path).__name__}")
    if path == ROOT:
        return path
    if not path:
        raise SqlarInvalidPathError(path, "empty path")
    if "\x00" in path:
        raise SqlarInvalidPathError(path, "NUL character")
    if path.startswith("/") or path.endswith("/"):
        raise SqlarInvalidPathError(path, "leading or trailing '/'")
    for part in path.split("/"):
        if not part:
            raise SqlarInvalidPathError(path, "empty segment")
        if part in (".", ".."):
            raise SqlarInvalidPathError(path, f"'{part}' segment")
    return path


def split_path(path: str) -> tuple[str, str]:
    """Split a validated non-root path into (parent, name); the parent of a top-level name is ROOT."""
    parent, sep, name = path.rpartition("/")
    if not sep:
        return ROOT, path
    return parent, name


def join_path(parent: str, name: str) -> str:
    if parent == ROOT:
        return name
    return parent + "/" + name


def is_valid_segment(name: object) -> bool:
    return isinstance(name, str) and bool(name) and name not in (".", "..") and "/" not in name and "\x00" not in name
