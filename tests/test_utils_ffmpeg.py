"""Tests for the ffmpeg helper functions."""
import json
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from termreel.utils.ffmpeg import (
    FFmpegError,
    build_rawvideo_command,
    check_ffprobe_installed,
    get_video_info,
    get_video_resolution,
)

WHICH = "termreel.utils.ffmpeg.shutil.which"
RUN = "termreel.utils.ffmpeg.subprocess.run"


def probe_output(*streams) -> MagicMock:
    return MagicMock(stdout=json.dumps({"streams": list(streams)}))


class TestCheckFFprobeInstalled:
    """Tests for check_ffprobe_installed."""

    def test_found(self):
        with patch(WHICH, return_value="/usr/bin/ffprobe"):
            assert check_ffprobe_installed() == "/usr/bin/ffprobe"

    def test_missing(self):
        with patch(WHICH, return_value=None):
            with pytest.raises(FFmpegError):
                check_ffprobe_installed()


class TestGetVideoInfo:
    """Tests for get_video_info."""

    def test_parses_json(self):
        with patch(WHICH, return_value="/usr/bin/ffprobe"), \
                patch(RUN, return_value=probe_output({"width": 640, "height": 360})) as mock_run:
            info = get_video_info(Path("clip.mp4"))
        assert info["streams"][0]["width"] == 640
        cmd = mock_run.call_args[0][0]
        assert cmd[0] == "ffprobe"
        assert cmd[-1] == "clip.mp4"

    def test_command_failure(self):
        error = subprocess.CalledProcessError(1, "ffprobe", stderr="Invalid data")
        with patch(WHICH, return_value="/usr/bin/ffprobe"), patch(RUN, side_effect=error):
            with pytest.raises(FFmpegError, match="Invalid data"):
                get_video_info(Path("clip.mp4"))

    def test_timeout(self):
        with patch(WHICH, return_value="/usr/bin/ffprobe"), \
                patch(RUN, side_effect=subprocess.TimeoutExpired("ffprobe", 10)):
            with pytest.raises(FFmpegError, match="timed out"):
                get_video_info(Path("clip.mp4"))

    def test_bad_json(self):
        with patch(WHICH, return_value="/usr/bin/ffprobe"), \
                patch(RUN, return_value=MagicMock(stdout="not json")):
            with pytest.raises(FFmpegError):
                get_video_info(Path("clip.mp4"))


class TestGetVideoResolution:
    """Tests for get_video_resolution."""

    def test_resolution(self):
        output = probe_output({"codec_type": "video", "width": 1920, "height": 1080})
        with patch(WHICH, return_value="/usr/bin/ffprobe"), patch(RUN, return_value=output):
            assert get_video_resolution(Path("clip.mp4")) == (1920, 1080)

    def test_skips_unsized_streams(self):
        output = probe_output({"codec_type": "video"}, {"width": 320, "height": 240})
        with patch(WHICH, return_value="/usr/bin/ffprobe"), patch(RUN, return_value=output):
            assert get_video_resolution(Path("clip.mp4")) == (320, 240)

    def test_no_video_stream(self):
        with patch(WHICH, return_value="/usr/bin/ffprobe"), patch(RUN, return_value=probe_output()):
            with pytest.raises(FFmpegError):
                get_video_resolution(Path("clip.mp4"))


class TestBuildRawvideoCommand:
    """Tests for build_rawvideo_command."""

    def test_command(self):
        cmd = build_rawvideo_command(Path("clip.mp4"), 24, 40, 22)
        assert cmd[0] == "ffmpeg"
        assert cmd[cmd.index("-i") + 1] == "clip.mp4"
        assert cmd[cmd.index("-vf") + 1] == "fps=24,scale=40:22"
        assert cmd[cmd.index("-pix_fmt") + 1] == "rgb24"
        assert "-an" in cmd
        assert cmd[-1] == "pipe:1"

    def test_executable(self):
        cmd = build_rawvideo_command(Path("clip.mp4"), 10, 8, 4, executable="/opt/ffmpeg")
        assert cmd[0] == "/opt/ffmpeg"
