"""Start the frame renderer and the audio player."""
import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..config import PlaybackConfig
from ..exceptions import AudioLaunchError, LaunchError
from ..utils.dependencies import find_program
from ..utils.ffmpeg import FFmpegError, build_rawvideo_command, get_video_resolution
from ..utils.logging import get_logger
from .painter import FrameGeometry, FramePainter
from .process import SubprocessHandle
from .reader import DelimiterSegmenter, FixedSizeSegmenter
from .session import PlaybackSession

logger = get_logger("launcher")

RENDERER_EXECUTABLE = "ffmpeg"

# Terminal cells are roughly twice as tall as they are wide
CELL_ASPECT = 0.55

AudioCommandBuilder = Callable[[str, Path], List[str]]

AUDIO_BACKENDS: Dict[str, AudioCommandBuilder] = {
    "ffplay": lambda exe, path: [exe, "-nodisp", "-autoexit", "-loglevel", "quiet", str(path)],
    "mpv": lambda exe, path: [exe, "--no-video", "--no-terminal", str(path)],
    "afplay": lambda exe, path: [exe, str(path)],
}


def resolve_geometry(config: PlaybackConfig) -> FrameGeometry:
    """Work out the pixel size ffmpeg should scale frames to.

    In color mode one pixel is two terminal columns wide. Without an
    explicit height the source aspect ratio is probed with ffprobe; if that
    fails the frame is assumed to be 16:9.
    """
    columns = max(config.width // 2, 1) if config.color else config.width

    if config.height is not None:
        return FrameGeometry(columns=columns, rows=config.height, color=config.color)

    try:
        src_w, src_h = get_video_resolution(config.input_path)
        rows = src_h * columns / src_w
        if not config.color:
            rows *= CELL_ASPECT
    except FFmpegError as e:
        logger.info(f"Could not probe video size, assuming 16:9: {e}")
        rows = columns * 9 / 16

    return FrameGeometry(columns=columns, rows=max(int(rows), 1), color=config.color)


def build_custom_command(config: PlaybackConfig) -> List[str]:
    """Substitute placeholders in the user-supplied renderer argv."""
    values = {
        "{input}": str(config.input_path),
        "{fps}": str(config.fps),
        "{width}": str(config.width),
        "{height}": str(config.height) if config.height is not None else "auto",
    }
    command = []
    for arg in config.renderer_command or ():
        for placeholder, value in values.items():
            arg = arg.replace(placeholder, value)
        command.append(arg)
    return command


def find_audio_backend(preferences: Sequence[str]) -> Optional[Tuple[str, str]]:
    """First audio player from ``preferences`` available on PATH."""
    return find_program(preferences)


def build_audio_command(name: str, executable: str, input_path: Path) -> List[str]:
    builder = AUDIO_BACKENDS.get(name)
    if builder is None:
        return [executable, str(input_path)]
    return builder(executable, input_path)


def _spawn(role: str, command: List[str], capture_output: bool) -> SubprocessHandle:
    new_session = os.name == "posix"
    stderr_file = tempfile.TemporaryFile() if capture_output else None
    try:
        process = subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE if capture_output else subprocess.DEVNULL,
            stderr=stderr_file if stderr_file is not None else subprocess.DEVNULL,
            start_new_session=new_session,
        )
    except OSError:
        if stderr_file is not None:
            stderr_file.close()
        raise
    logger.debug(f"Started {role} process", pid=process.pid, command=" ".join(command))
    return SubprocessHandle(role, process, command, stderr_file=stderr_file, own_process_group=new_session)


def launch_audio(config: PlaybackConfig) -> Tuple[Optional[SubprocessHandle], Optional[AudioLaunchError]]:
    """Start the first available audio player.

    Returns:
        ``(handle, None)`` on success, ``(None, error)`` when playback has
        to continue without sound
    """
    found = find_audio_backend(config.audio_backends)
    if found is None:
        return None, AudioLaunchError(
            "No audio player found (tried: " + ", ".join(config.audio_backends) + "); playing without sound"
        )

    name, executable = found
    command = build_audio_command(name, executable, config.input_path)
    try:
        return _spawn("audio", command, capture_output=False), None
    except OSError as e:
        return None, AudioLaunchError(
            f"Could not start audio player {name}: {e}; playing without sound",
            command=command,
            executable=executable,
            cause=e,
        )


def launch(config: PlaybackConfig) -> PlaybackSession:
    """Start the renderer and, if enabled, the audio player.

    The renderer starts first so that a renderer failure leaves no process
    behind. Audio problems never fail the launch.

    Raises:
        LaunchError: Input vanished, renderer missing, or spawn refused
    """
    if not config.input_path.is_file():
        raise LaunchError(f"Input file not found: {config.input_path}")

    geometry: Optional[FrameGeometry] = None
    if config.renderer_command:
        command = build_custom_command(config)
        executable = shutil.which(command[0])
        if executable is None:
            raise LaunchError(
                f"Renderer '{command[0]}' not found on PATH",
                command=command,
                executable=command[0],
            )
        segmenter = DelimiterSegmenter(config.frame_delimiter)
        transform = None
    else:
        executable = shutil.which(RENDERER_EXECUTABLE)
        if executable is None:
            raise LaunchError(
                "ffmpeg not found. Install ffmpeg and ensure it is on PATH.",
                executable=RENDERER_EXECUTABLE,
            )
        geometry = resolve_geometry(config)
        command = build_rawvideo_command(
            config.input_path, config.fps, geometry.columns, geometry.rows, executable=executable
        )
        segmenter = FixedSizeSegmenter(geometry.frame_size)
        transform = FramePainter(geometry)

    try:
        video = _spawn("video", command, capture_output=True)
    except OSError as e:
        raise LaunchError(
            f"Could not start renderer: {e}",
            command=command,
            executable=executable,
            cause=e,
        ) from e

    session = PlaybackSession(
        config=config,
        video=video,
        segmenter=segmenter,
        transform=transform,
        geometry=geometry,
    )

    if config.sound:
        session.audio, audio_error = launch_audio(config)
        if audio_error is not None:
            logger.warning(audio_error.message)
            session.warnings.append(audio_error.message)

    return session
