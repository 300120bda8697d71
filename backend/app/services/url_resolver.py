from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum


class VideoProvider(StrEnum):
    YOUTUBE = "youtube"
    VIMEO = "vimeo"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class VideoIdentity:
    provider: VideoProvider
    external_id: str | None = None

    def __post_init__(self) -> None:
        if (self.provider is VideoProvider.UNKNOWN) != (self.external_id is None):
            raise ValueError(
                "external_id must be set for known providers and absent for unknown ones: "
                f"provider={self.provider} external_id={self.external_id!r}"
            )

    @property
    def is_known(self) -> bool:
        return self.provider is not VideoProvider.UNKNOWN


UNKNOWN_VIDEO = VideoIdentity(provider=VideoProvider.UNKNOWN)

YOUTUBE_ID_PATTERN = re.compile(
    r"(?:youtu\.be/|youtube\.com(?:/embed/|/v/|/watch\?v=|/watch\?.+&v=))([^\"&?/\s]{11})"
)
VIMEO_ID_PATTERN = re.compile(
    r"(?:www\.|player\.)?vimeo\.com/"
    r"(?:channels/(?:\w+/)?(?:videos/)?|groups/(?:[^/]*)/videos/|video/|)"
    r"(\d+)"
)
_YOUTUBE_ID_CHARS = re.compile(r"[A-Za-z0-9_-]{11}")


def resolve_video_url(raw_url: str) -> VideoIdentity:
    """Classify a pasted URL as a YouTube or Vimeo video.

    Pure and deterministic; never touches the network. Anything that does not
    match a known provider pattern (including an empty string) resolves to
    `UNKNOWN_VIDEO`.
    """
    candidate = raw_url.strip()
    if not candidate:
        return UNKNOWN_VIDEO

    youtube_match = YOUTUBE_ID_PATTERN.search(candidate)
    if youtube_match is not None and _YOUTUBE_ID_CHARS.fullmatch(youtube_match.group(1)):
        return VideoIdentity(provider=VideoProvider.YOUTUBE, external_id=youtube_match.group(1))

    vimeo_match = VIMEO_ID_PATTERN.search(candidate)
    if vimeo_match is not None:
        return VideoIdentity(provider=VideoProvider.VIMEO, external_id=vimeo_match.group(1))

    return UNKNOWN_VIDEO
