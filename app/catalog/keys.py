"""Helpers for splitting object keys into folder segments."""

from app.core.constants import KEY_DELIMITER


def is_folder_key(key: str) -> bool:
    return key.endswith(KEY_DELIMITER)


def parent_prefix(key: str) -> str | None:
    """Return the key of the folder holding ``key``, or None at the bucket root.

    >>> parent_prefix("a/b/c/file.txt")
    'a/b/c/'
    >>> parent_prefix("a/b/")
    'a/'
    >>> parent_prefix("file.txt") is None
    True
    """
    trimmed = key.rstrip(KEY_DELIMITER)
    idx = trimmed.rfind(KEY_DELIMITER)
    if idx == -1:
        return None
    return trimmed[: idx + 1]


def ancestor_folders(key: str) -> list[tuple[str, str | None]]:
    """Return ``(folder_key, parent_prefix)`` for every folder above ``key``.

    Ordered from the bucket root downwards; the key itself is never
    included, even when it is a folder. Empty segments from doubled
    delimiters are skipped.

    >>> ancestor_folders("a/b/c/file.txt")
    [('a/', None), ('a/b/', 'a/'), ('a/b/c/', 'a/b/')]
    """
    parent = parent_prefix(key)
    if parent is None:
        return []

    folders: list[tuple[str, str | None]] = []
    current = ""
    for segment in parent.split(KEY_DELIMITER):
        if not segment:
            continue
        folder_parent = current or None
        current = f"{current}{segment}{KEY_DELIMITER}"
        folders.append((current, folder_parent))
    return folders
