"""
Streaming helpers for the IBC demo backend.

HLS playlist parsing and marker-flow utilities. Markers are ordinary
flows whose ``content_type`` tag contains ``"marker"``; their display
properties are stored as single-element tag lists.
"""

from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urljoin

MARKER_FORMAT = "application/x-marker+json"

DEFAULT_MARKER_COLOR = "#00ff00"
DEFAULT_MARKER_DISPLAY = "square"

DEFAULT_MARKER_TAGS: dict[str, list[str]] = {
    "marker_type": ["system_status"],
    "display": [DEFAULT_MARKER_DISPLAY],
    "color": [DEFAULT_MARKER_COLOR],
    "editable": ["true"],
}


@dataclass
class HlsSegment:
    """One media segment listed in an HLS playlist."""
    segment_id: str
    url: str
    duration_ms: float = 0.0
    format: str = "ts"

    def to_dict(self) -> dict[str, Any]:
        return {
            "segment_id": self.segment_id,
            "url": self.url,
            "duration_ms": self.duration_ms,
            "format": self.format,
        }


@dataclass
class HlsManifest:
    """
    A fetched HLS playlist.

    Attributes:
        manifest: Raw playlist text
        segments: Segments in playlist order
    """
    manifest: str
    segments: list[HlsSegment] = field(default_factory=list)

    @property
    def duration_ms(self) -> float:
        return sum(segment.duration_ms for segment in self.segments)


def parse_hls_manifest(text: str, base_url: str | None = None) -> HlsManifest:
    """
    Parse an HLS media playlist.

    ``#EXTINF`` durations (seconds) are converted to milliseconds and
    attached to the URI line that follows. Relative URIs are resolved
    against ``base_url`` when given.

    Args:
        text: Playlist text
        base_url: Address the playlist was fetched from

    Returns:
        HlsManifest with the parsed segments
    """
    segments: list[HlsSegment] = []
    duration_ms = 0.0

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        if line.startswith("#EXTINF:"):
            value = line[len("#EXTINF:"):].split(",", 1)[0]
            try:
                duration_ms = float(value) * 1000
            except ValueError:
                duration_ms = 0.0
            continue
        if line.startswith("#"):
            continue

        url = urljoin(base_url, line) if base_url else line
        segment_id = url.rstrip("/").rsplit("/", 1)[-1].split("?", 1)[0]
        if segment_id:
            segments.append(HlsSegment(segment_id=segment_id, url=url, duration_ms=duration_ms))
        duration_ms = 0.0

    return HlsManifest(manifest=text, segments=segments)


def _tag_values(entity: dict[str, Any], name: str) -> list[str]:
    value = (entity.get("tags") or {}).get(name)
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def build_marker_payload(marker: dict[str, Any]) -> dict[str, Any]:
    """Request body for creating a marker flow, with default display tags."""
    tags = {"content_type": ["marker"]}
    supplied = marker.get("tags") or {}
    for name, default in DEFAULT_MARKER_TAGS.items():
        tags[name] = list(supplied.get(name) or default)

    payload = {
        "source_id": marker.get("source_id"),
        "label": marker.get("label"),
        "description": marker.get("description"),
        "format": MARKER_FORMAT,
        "tags": tags,
    }
    if marker.get("metadata") is not None:
        payload["metadata"] = marker["metadata"]
    return payload


def is_marker_flow(flow: dict[str, Any]) -> bool:
    return "marker" in _tag_values(flow, "content_type")


def extract_markers_from_source(source: dict[str, Any]) -> list[dict[str, Any]]:
    return [flow for flow in source.get("flows") or [] if is_marker_flow(flow)]


def extract_video_flows_from_source(source: dict[str, Any]) -> list[dict[str, Any]]:
    return [flow for flow in source.get("flows") or [] if not is_marker_flow(flow)]


def get_marker_color(marker: dict[str, Any]) -> str:
    values = _tag_values(marker, "color")
    return values[0] if values else DEFAULT_MARKER_COLOR


def get_marker_display_type(marker: dict[str, Any]) -> str:
    values = _tag_values(marker, "display")
    return values[0] if values else DEFAULT_MARKER_DISPLAY


def is_marker_editable(marker: dict[str, Any]) -> bool:
    values = _tag_values(marker, "editable")
    return bool(values) and values[0] == "true"
