import logging
from pathlib import Path

import ffmpeg  # Use the ffmpeg-python wrapper

logger = logging.getLogger(__name__)


def extract_audio(input_path: Path, output_dir: Path) -> Path:
    """
    Extracts the audio track of an uploaded video into a compact OGG/Opus file using FFmpeg.

    - Drops the video stream and downmixes to mono at 16 kHz, which is all speech-to-text needs.
    - Keeps uploads well under the transcription services' size limits.
    - Returns the original path if FFmpeg fails or produces an empty file, so the caller
      can still transcribe the raw upload.
    """
    output_path = output_dir / f"{input_path.stem}_audio.ogg"
    logger.info("FFMPEG Processor: Extracting audio from %s", input_path.name)

    # --- FFmpeg Command Chain ---
    # 1. -vn: drop the video stream.
    # 2. -ac 1 -ar 16000: mono, 16 kHz.
    # 3. -c:a libopus: encode speech with Opus at a low bitrate.
    try:
        (
            ffmpeg
            .input(str(input_path))
            .output(str(output_path), vn=None, ac=1, ar=16000, acodec="libopus", audio_bitrate="32k")
            .overwrite_output()
            .run(capture_stdout=True, capture_stderr=True)
        )
    except ffmpeg.Error as e:
        stderr = e.stderr.decode(errors="replace") if e.stderr else ""
        logger.warning("❌ FFMPEG Error during audio extraction, using original upload: %s", stderr[-500:])
        output_path.unlink(missing_ok=True)
        return input_path
    except OSError as e:
        # ffmpeg binary missing from PATH
        logger.warning("❌ FFMPEG could not be started, using original upload: %s", e)
        return input_path

    # --- ROBUSTNESS CHECK ---
    # An empty output usually means the upload had no audio track.
    if not output_path.exists() or output_path.stat().st_size == 0:
        logger.warning("⚠️ FFMPEG Processor: Extracted audio '%s' is empty or missing.", output_path.name)
        output_path.unlink(missing_ok=True)
        return input_path

    logger.info("✅ Extracted audio is valid (size: %d bytes).", output_path.stat().st_size)
    return output_path
