import uuid
from typing import List
from pydantic import BaseModel, Field

NEW_VIDEO_ID = "new-video"
NEW_VIDEO_TITLE = "Create a new video masterpiece"
NEW_VIDEO_DESCRIPTION = "A cinematic, photorealistic shot of an astronaut riding a horse on Mars."

VIDEO_MIME_TYPE = "video/mp4"


class VideoArtifact(BaseModel):
    """A gallery entry. `description` is the prompt that produced it."""
    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str = ""
    video_url: str = ""  # data: URI or remote URL, empty only for drafts

    @property
    def is_draft(self) -> bool:
        return self.id == NEW_VIDEO_ID


def new_artifact_id() -> str:
    return str(uuid.uuid4())


def to_data_url(payload: str, mime_type: str = VIDEO_MIME_TYPE) -> str:
    """Wrap a base64 payload as an inline data URI."""
    return f"data:{mime_type};base64,{payload}"


def new_video_draft() -> VideoArtifact:
    return VideoArtifact(
        id=NEW_VIDEO_ID,
        title=NEW_VIDEO_TITLE,
        description=NEW_VIDEO_DESCRIPTION,
        video_url=""
    )


def remix_title(title: str) -> str:
    return f'Remix of "{title}"'


DEFAULT_VIDEOS: List[VideoArtifact] = [
    VideoArtifact(
        id="default-garden-timelapse",
        title="Garden Blooms at First Light",
        description="A timelapse of a flower garden opening its blossoms as the morning sun rises, soft golden light, shallow depth of field.",
        video_url="https://storage.googleapis.com/gtv-videos-bucket/sample/ForBiggerBlazes.mp4",
    ),
    VideoArtifact(
        id="default-ocean-drone",
        title="Drone Flight Over Turquoise Waves",
        description="An aerial drone shot gliding low over turquoise ocean waves crashing on a white sand beach, cinematic and smooth.",
        video_url="https://storage.googleapis.com/gtv-videos-bucket/sample/ForBiggerEscapes.mp4",
    ),
    VideoArtifact(
        id="default-city-night",
        title="Neon City After the Rain",
        description="A slow dolly shot down a rain-soaked neon city street at night, reflections shimmering in puddles, cyberpunk mood.",
        video_url="https://storage.googleapis.com/gtv-videos-bucket/sample/ForBiggerJoyrides.mp4",
    ),
]


def default_videos() -> List[VideoArtifact]:
    return [v.model_copy() for v in DEFAULT_VIDEOS]
