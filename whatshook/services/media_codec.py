"""Audio transcoding via ffmpeg and image orientation via Pillow.

WhatsApp voice notes arrive as OGG/Opus while the speech-to-text endpoint
wants 16 kHz mono WAV; synthesized replies come back as WAV, which WhatsApp
does not play, so they go out as OGG/Opus.
"""

import io
import shutil
import subprocess

from PIL import ExifTags, Image, ImageOps, UnidentifiedImageError

from whatshook.logging_config import get_logger
from whatshook.services.result import CONVERSION_ERROR, Result

logger = get_logger("media_codec")

FFMPEG_TIMEOUT_SECONDS = 30

WAV_ARGS = ["-f", "wav", "-ar", "16000", "-ac", "1", "-acodec", "pcm_s16le"]
OGG_OPUS_ARGS = ["-f", "ogg", "-c:a", "libopus", "-b:a", "32k"]


def ffmpeg_available() -> bool:
    return shutil.which("ffmpeg") is not None


def _ffmpeg(data: bytes, output_args: list[str], label: str) -> Result[bytes]:
    if not data:
        return Result.failure(f"{label}: empty input", CONVERSION_ERROR)

    try:
        result = subprocess.run(
            ["ffmpeg", "-hide_banner", "-loglevel", "error", "-i", "pipe:0", *output_args, "pipe:1"],
            input=data,
            capture_output=True,
            timeout=FFMPEG_TIMEOUT_SECONDS,
        )
    except subprocess.TimeoutExpired:
        logger.error(f"ffmpeg {label} timed out after {FFMPEG_TIMEOUT_SECONDS}s")
        return Result.failure(f"{label}: timeout", CONVERSION_ERROR)
    except OSError as e:
        logger.error(f"ffmpeg {label} could not start: {e}")
        return Result.failure(f"{label}: {e}", CONVERSION_ERROR)

    if result.returncode != 0:
        stderr = result.stderr[:300].decode(errors="replace")
        logger.error(f"ffmpeg {label} failed", extra={"context": {"exit_code": result.returncode, "stderr": stderr}})
        return Result.failure(f"{label}: exit code {result.returncode}", CONVERSION_ERROR)

    if not result.stdout:
        return Result.failure(f"{label}: empty output", CONVERSION_ERROR)

    logger.info(f"ffmpeg {label}: {len(data)} -> {len(result.stdout)} bytes")
    return Result.success(result.stdout)


def ogg_to_wav(data: bytes) -> Result[bytes]:
    return _ffmpeg(data, WAV_ARGS, "ogg->wav")


def wav_to_ogg(data: bytes) -> Result[bytes]:
    return _ffmpeg(data, OGG_OPUS_ARGS, "wav->ogg")


def auto_orient(data: bytes) -> Result[bytes]:
    """Rotate an image upright from its EXIF orientation tag.

    Size and format are kept. Images without a rotation return the input bytes.
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            if image.getexif().get(ExifTags.Base.Orientation, 1) == 1:
                return Result.success(data)
            image_format = image.format or "JPEG"
            upright = ImageOps.exif_transpose(image)
            output = io.BytesIO()
            if image_format == "JPEG":
                upright.save(output, format=image_format, quality=95)
            else:
                upright.save(output, format=image_format)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.warning(f"Image orientation failed: {e}")
        return Result.failure(str(e), CONVERSION_ERROR)

    return Result.success(output.getvalue())
