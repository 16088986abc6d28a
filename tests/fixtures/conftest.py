"""Test fixture helpers: stand-in renderers and synthetic videos.

Most playback tests drive a small Python script through the custom
renderer path, so they run without ffmpeg installed. The script writes
``frame-<n>`` payloads separated by a delimiter and exits with a chosen
status.
"""
import subprocess
import sys
from pathlib import Path
from typing import List, Tuple

FAKE_RENDERER_SCRIPT = """
import sys, time
frames = int(sys.argv[1])
delay = float(sys.argv[2])
code = int(sys.argv[3])
delim = bytes.fromhex(sys.argv[4])
message = sys.argv[5]
out = sys.stdout.buffer
for i in range(frames):
    out.write(delim + b"frame-%d" % i)
    out.flush()
    time.sleep(delay)
out.write(delim)
out.flush()
if message:
    sys.stderr.write(message)
    sys.stderr.flush()
sys.exit(code)
"""

# Prints "ready" once its SIGTERM handler is in place, then hangs
STUBBORN_SCRIPT = """
import signal, sys, time
signal.signal(signal.SIGTERM, signal.SIG_IGN)
print("ready", flush=True)
time.sleep(60)
"""

SLEEPER_SCRIPT = "import time; time.sleep(60)"


def fake_renderer_command(
    frames: int = 5,
    delay: float = 0.0,
    exit_code: int = 0,
    delimiter: bytes = b"\x1b[2J",
    stderr_message: str = "",
) -> Tuple[str, ...]:
    """Build a renderer argv that emits ``frames`` delimited payloads.

    Args:
        frames: Number of frames to write
        delay: Seconds to sleep after each frame
        exit_code: Status the script exits with
        delimiter: Bytes written before every frame and once at the end
        stderr_message: Text written to stderr just before exiting
    """
    return (
        sys.executable, "-c", FAKE_RENDERER_SCRIPT,
        str(frames), str(delay), str(exit_code), delimiter.hex(), stderr_message,
    )


def expected_payloads(frames: int) -> List[bytes]:
    return [b"frame-%d" % i for i in range(frames)]


def stubborn_command() -> List[str]:
    return [sys.executable, "-c", STUBBORN_SCRIPT]


def sleeper_command() -> List[str]:
    return [sys.executable, "-c", SLEEPER_SCRIPT]


def generate_test_video_ffmpeg(
    output_path: Path,
    duration_seconds: float = 3.0,
    width: int = 320,
    height: int = 240,
    fps: float = 24.0,
) -> bool:
    """Generate a test video with an audio track using ffmpeg.

    Args:
        output_path: Path to save the video
        duration_seconds: Video duration
        width: Video width
        height: Video height
        fps: Frames per second

    Returns:
        True if successful, False otherwise
    """
    cmd = [
        'ffmpeg', '-y',
        '-f', 'lavfi',
        '-i', f'testsrc2=duration={duration_seconds}:size={width}x{height}:rate={fps}',
        '-f', 'lavfi',
        '-i', f'sine=frequency=1000:duration={duration_seconds}',
        '-c:v', 'libx264',
        '-pix_fmt', 'yuv420p',
        '-preset', 'ultrafast',
        '-c:a', 'aac',
        '-shortest',
        str(output_path)
    ]

    try:
        result = subprocess.run(cmd, capture_output=True, timeout=60)
        return result.returncode == 0 and output_path.exists()
    except (subprocess.TimeoutExpired, FileNotFoundError):
        return False


def check_ffmpeg_available() -> bool:
    """Check if ffmpeg is available for video generation."""
    try:
        result = subprocess.run(
            ['ffmpeg', '-version'],
            capture_output=True,
            timeout=5
        )
        return result.returncode == 0
    except (subprocess.TimeoutExpired, FileNotFoundError):
        return False
