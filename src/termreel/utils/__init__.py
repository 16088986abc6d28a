"""
termreel Utilities Package
External tool discovery, ffmpeg helpers and logging setup.
"""

from .ffmpeg import (
    FFmpegError,
    check_ffprobe_installed,
    get_video_info,
    get_video_resolution,
    build_rawvideo_command,
)

from .dependencies import (
    DependencyInfo,
    DependencyReport,
    compare_versions,
    find_program,
    check_ffmpeg,
    check_ffprobe,
    check_audio_backends,
    validate_all_dependencies,
)

__all__ = [
    # FFmpeg utilities
    'FFmpegError',
    'check_ffprobe_installed',
    'get_video_info',
    'get_video_resolution',
    'build_rawvideo_command',
    # Dependency utilities
    'DependencyInfo',
    'DependencyReport',
    'compare_versions',
    'find_program',
    'check_ffmpeg',
    'check_ffprobe',
    'check_audio_backends',
    'validate_all_dependencies',
]
