"""Tolerant tag scanner for UPnP/SOAP payloads and DIDL-Lite metadata.

Speaker firmware emits XML that is often only tag-balanced, not well formed,
and nests whole documents HTML-escaped inside other documents. This module
locates tags by scanning rather than parsing, so it never rejects such input.
It does not handle self-closing tags or CDATA sections.

All XML access in the package goes through these functions, so a stricter
parser can be dropped in here without touching the services.
"""

from __future__ import annotations

import re
from functools import lru_cache
from xml.sax.saxutils import escape as _sax_escape

from sonosctrl.models.track import Track

_ENTITIES = {
    "lt": "<",
    "gt": ">",
    "amp": "&",
    "quot": '"',
    "apos": "'",
}
_ENTITY_RE = re.compile(r"&(lt|gt|amp|quot|apos);")

# Prefix for an optional namespace, e.g. "u:" or "dc:"
_NS = r"(?:[A-Za-z_][\w.\-]*:)?"

_SECONDS_PER_HOUR = 3600
_SECONDS_PER_MINUTE = 60


@lru_cache(maxsize=128)
def _tag_patterns(tag: str) -> tuple[re.Pattern[str], re.Pattern[str]]:
    """Return compiled (opening, closing) patterns for a tag name."""
    name = re.escape(tag)
    opening = re.compile(rf"<{_NS}{name}(?=[\s>/])[^>]*>")
    closing = re.compile(rf"</{_NS}{name}\s*>")
    return opening, closing


def _scan(tag: str, xml: str, start: int = 0) -> tuple[str, int] | None:
    """Find the next element body for tag at or after start.

    Returns:
        Tuple of (content, index after the closing tag), or None.
    """
    opening, closing = _tag_patterns(tag)
    pos = start
    while True:
        open_match = opening.search(xml, pos)
        if open_match is None:
            return None
        if open_match.group(0).endswith("/>"):
            pos = open_match.end()
            continue
        close_match = closing.search(xml, open_match.end())
        if close_match is None:
            return None
        return xml[open_match.end() : close_match.start()], close_match.end()


def extract_value(tag: str, xml: str) -> str | None:
    """Return the text of the first element named tag.

    Either side may carry a namespace prefix: looking up "CurrentVolume"
    matches ``<CurrentVolume>``, ``<u:CurrentVolume val="x">`` and their
    prefixed closing tags. A tag that itself includes a prefix, such as
    "dc:title", matches literally.

    Args:
        tag: Element name, optionally with a namespace prefix.
        xml: Document or fragment to scan.

    Returns:
        Raw (still escaped) element content, or None if the tag is absent.
    """
    found = _scan(tag, xml)
    return found[0] if found else None


def extract_all_values(tag: str, xml: str) -> list[str]:
    """Return the text of every element named tag, in document order."""
    results: list[str] = []
    pos = 0
    while (found := _scan(tag, xml, pos)) is not None:
        content, pos = found
        results.append(content)
    return results


def extract_attribute(name: str, text: str) -> str | None:
    """Return the first value of a name="..." attribute in text."""
    match = re.search(rf'(?<![\w:]){re.escape(name)}="([^"]*)"', text)
    return match.group(1) if match else None


def decode_entities(text: str) -> str:
    """Decode the five predefined XML entities in a single pass.

    A single pass means "&amp;lt;" becomes "&lt;", never "<".
    """
    return _ENTITY_RE.sub(lambda m: _ENTITIES[m.group(1)], text)


def xml_escape(text: str) -> str:
    """Escape a raw string for element content or attribute values.

    Only call on raw strings; an already escaped value gets escaped again.
    """
    return _sax_escape(text, {'"': "&quot;", "'": "&apos;"})


def parse_duration(text: str | None) -> float:
    """Parse "H:MM:SS" (or "M:SS") into seconds.

    Anything else, such as "NOT_IMPLEMENTED" or an empty string, gives 0.
    """
    if not text:
        return 0.0
    parts = text.strip().split(":")
    if len(parts) not in (2, 3):
        return 0.0
    try:
        values = [float(p) for p in parts]
    except ValueError:
        return 0.0
    if any(v < 0 for v in values):
        return 0.0
    if len(values) == 2:  # noqa: PLR2004
        values.insert(0, 0.0)
    hours, minutes, seconds = values
    return hours * _SECONDS_PER_HOUR + minutes * _SECONDS_PER_MINUTE + seconds


def format_duration(seconds: float) -> str:
    """Format seconds as "M:SS", or "H:MM:SS" when there are hours."""
    total = max(0, int(seconds))
    hours, rest = divmod(total, _SECONDS_PER_HOUR)
    minutes, secs = divmod(rest, _SECONDS_PER_MINUTE)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_timestamp(seconds: float) -> str:
    """Format seconds as "H:MM:SS" for Seek and sleep-timer arguments."""
    total = max(0, int(seconds))
    hours, rest = divmod(total, _SECONDS_PER_HOUR)
    minutes, secs = divmod(rest, _SECONDS_PER_MINUTE)
    return f"{hours}:{minutes:02d}:{secs:02d}"


def _text(tag: str, xml: str) -> str | None:
    """Return decoded element text, or None."""
    value = extract_value(tag, xml)
    return decode_entities(value) if value is not None else None


def _to_int(value: str | None, default: int = 0) -> int:
    try:
        return int(value) if value is not None else default
    except ValueError:
        return default


def _res_uri(fragment: str) -> str:
    value = _text("res", fragment)
    return value.strip() if value else ""


def parse_track_metadata(didl: str, track_uri: str = "") -> Track | None:
    """Decode a DIDL-Lite fragment into a Track.

    Args:
        didl: DIDL-Lite as it appears inside a SOAP response, i.e. escaped
            once. It is decoded exactly once here.
        track_uri: Resource URI reported separately (TrackURI).

    Returns:
        The track, or None if the fragment carries no metadata.
    """
    if not didl or didl == "NOT_IMPLEMENTED":
        return None
    decoded = decode_entities(didl)
    if "<" not in decoded:
        return None
    title = _text("dc:title", decoded) or "Unknown"
    artist = _text("dc:creator", decoded) or _text("r:albumArtist", decoded) or ""
    return Track(
        title=title,
        artist=artist,
        album=_text("upnp:album", decoded) or "",
        album_art_uri=_text("upnp:albumArtURI", decoded) or "",
        uri=track_uri or _res_uri(decoded),
        track_number=_to_int(_text("upnp:originalTrackNumber", decoded)),
        item_id=extract_attribute("id", decoded) or "",
    )


def split_didl_entries(decoded: str, element: str) -> list[str]:
    """Split a decoded DIDL-Lite document into raw entry fragments.

    Args:
        decoded: DIDL-Lite document with entities already decoded.
        element: "item" or "container".

    Returns:
        One fragment per entry, from its opening tag up to and including
        its closing tag when one is present.
    """
    marker = f"<{element} "
    closing = f"</{element}>"
    entries: list[str] = []
    for chunk in decoded.split(marker)[1:]:
        end = chunk.find(closing)
        body = chunk[: end + len(closing)] if end >= 0 else chunk
        entries.append(marker + body)
    return entries


def parse_didl_items(result: str, start: int = 0) -> list[Track]:
    """Parse a Browse Result (escaped once) into queue tracks.

    Args:
        result: Content of the Result element.
        start: Starting index of the page, used for fallback numbering.

    Returns:
        Tracks in document order. Track numbers fall back to the 1-based
        queue position when originalTrackNumber is missing.
    """
    decoded = decode_entities(result)
    tracks: list[Track] = []
    for index, item in enumerate(split_didl_entries(decoded, "item"), start=1):
        tracks.append(
            Track(
                title=_text("dc:title", item) or "Unknown",
                artist=_text("dc:creator", item) or "",
                album=_text("upnp:album", item) or "",
                album_art_uri=_text("upnp:albumArtURI", item) or "",
                uri=_res_uri(item),
                track_number=_to_int(
                    _text("upnp:originalTrackNumber", item), default=start + index
                ),
                item_id=extract_attribute("id", item) or f"Q:0/{start + index}",
            )
        )
    return tracks
