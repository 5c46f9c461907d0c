"""User-facing status messages.

Raw provider errors are never shown to users; they collapse into a small,
fixed set of categories.
"""

CONTENT_POLICY = "Content policy violation detected"
SERVER_CREDITS = "Generation service is out of credits"
QUEUE_BUSY = "Queue is busy, please try again shortly"
GENERATION_FAILED = "Generation failed"
TIMED_OUT = "Generation timed out"
IMAGE_FAILED = "Image generation failed"

IMAGE_GENERATING = "Generating image..."
IMAGE_READY = "Image ready"
VIDEO_SUBMITTING = "Starting..."
VIDEO_STARTED = "Sent to the video provider"
VIDEO_DONE = "Complete"

_CATEGORIES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("nsfw", "safety", "content policy", "sensitive"), CONTENT_POLICY),
    (("insufficient credit", "credits", "402", "billing"), SERVER_CREDITS),
    (("429", "rate limit", "throttl", "queue", "busy", "503"), QUEUE_BUSY),
)


def friendly_error(raw: str | None) -> str:
    text = (raw or "").lower()
    for needles, message in _CATEGORIES:
        if any(needle in text for needle in needles):
            return message
    return GENERATION_FAILED


def running_message(elapsed_seconds: float) -> str:
    return f"Running {int(elapsed_seconds)}s..."
