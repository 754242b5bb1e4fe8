import re
from pathlib import PurePosixPath

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_REPEATED_DASH = re.compile(r"-{2,}")
_DASH_BEFORE_DOT = re.compile(r"-+\.")

MAX_FILENAME_LENGTH = 120


def filename_stem(filename: str) -> str:
    """Return the filename without directories or its last extension."""
    name = PurePosixPath(filename.replace("\\", "/")).name
    stem, dot, _ = name.rpartition(".")
    return stem if dot and stem else name


def slugify(text: str) -> str:
    """Lowercase, collapse runs of non-alphanumerics into '-', trim dashes."""
    return _NON_ALNUM.sub("-", text.lower()).strip("-")


def derive_slug(display_name: str | None, original_filename: str) -> str:
    """
    Deterministic, case-insensitive slug for an asset.

    Uses the display name when it carries any alphanumerics, otherwise the
    original filename stem.
    """
    slug = slugify(display_name or "")
    if slug:
        return slug
    return slugify(filename_stem(original_filename))


def normalize_slug(slug: str) -> str:
    """Normalize a slug received from a URL so lookups are case-insensitive."""
    return slugify(slug)


def sanitize_filename(filename: str) -> str:
    """
    Make an uploader-provided filename safe to embed in a storage key.

    Strips directories, replaces unsafe characters with '-', keeps the
    extension and caps the length.
    """
    name = PurePosixPath(filename.replace("\\", "/")).name
    name = _UNSAFE_FILENAME_CHARS.sub("-", name)
    name = _REPEATED_DASH.sub("-", name)
    name = _DASH_BEFORE_DOT.sub(".", name).strip("-.")
    if not name:
        return "upload"

    if len(name) > MAX_FILENAME_LENGTH:
        stem, dot, ext = name.rpartition(".")
        if dot and len(ext) < 10:
            name = f"{stem[: MAX_FILENAME_LENGTH - len(ext) - 1]}.{ext}"
        else:
            name = name[:MAX_FILENAME_LENGTH]
    return name


def format_bytes(size_bytes: int) -> str:
    """Human-readable size for dashboards (KB below 1 MB, MB above)."""
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes / (1024 * 1024):.1f} MB"
