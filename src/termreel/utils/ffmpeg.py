"""
FFmpeg Helper Functions
Probing source videos and building the rawvideo renderer command.
"""

import json
import shutil
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Tuple

PROBE_TIMEOUT = 10.0


class FFmpegError(Exception):
    """Custom exception for FFmpeg-related errors."""
    pass


def check_ffprobe_installed() -> str:
    """
    Locate ffprobe on PATH.

    Returns:
        Absolute path of the ffprobe executable

    Raises:
        FFmpegError: If ffprobe is not found
    """
    ffprobe_path = shutil.which('ffprobe')
    if not ffprobe_path:
        raise FFmpegError(
            "ffprobe not found. Please install FFmpeg (includes ffprobe)."
        )
    return ffprobe_path


def get_video_info(video_path: Path) -> Dict[str, Any]:
    """
    Get detailed video information using ffprobe.

    Args:
        video_path: Path to video file

    Returns:
        Dictionary containing video metadata

    Raises:
        FFmpegError: If ffprobe command fails
    """
    check_ffprobe_installed()

    cmd = [
        'ffprobe',
        '-v', 'error',
        '-select_streams', 'v:0',
        '-print_format', 'json',
        '-show_streams',
        str(video_path)
    ]

    try:
        result = subprocess.run(
            cmd, capture_output=True, text=True, check=True, timeout=PROBE_TIMEOUT
        )
        return json.loads(result.stdout)
    except subprocess.CalledProcessError as e:
        raise FFmpegError(f"Failed to get video info: {e.stderr}")
    except subprocess.TimeoutExpired:
        raise FFmpegError(f"ffprobe timed out after {PROBE_TIMEOUT}s")
    except json.JSONDecodeError as e:
        raise FFmpegError(f"Failed to parse ffprobe output: {e}")


def get_video_resolution(video_path: Path) -> Tuple[int, int]:
    """
    Get video resolution (width, height).

    Args:
        video_path: Path to video file

    Returns:
        Tuple of (width, height)

    Raises:
        FFmpegError: If probing fails or the file has no video stream
    """
    info = get_video_info(video_path)

    for stream in info.get('streams', []):
        if stream.get('codec_type', 'video') == 'video':
            width = int(stream.get('width', 0) or 0)
            height = int(stream.get('height', 0) or 0)
            if width > 0 and height > 0:
                return (width, height)

    raise FFmpegError(f"No video stream with a known size in {video_path}")


def build_rawvideo_command(
    video_path: Path,
    fps: int,
    width: int,
    height: int,
    executable: str = 'ffmpeg',
) -> List[str]:
    """
    Build the ffmpeg command that streams scaled rgb24 frames to stdout.

    Each frame on stdout is exactly ``width * height * 3`` bytes.

    Args:
        video_path: Path to input video
        fps: Output frame rate
        width: Output width in pixels
        height: Output height in pixels
        executable: ffmpeg executable to invoke

    Returns:
        Command as an argv list
    """
    return [
        executable,
        '-hide_banner',
        '-loglevel', 'error',
        '-nostdin',
        '-i', str(video_path),
        '-an',  # Audio is played by a separate process
        '-vf', f'fps={fps},scale={width}:{height}',
        '-f', 'rawvideo',
        '-pix_fmt', 'rgb24',
        'pipe:1',
    ]
