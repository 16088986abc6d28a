"""Dependency discovery for termreel.

termreel shells out for decoding and for audio, so everything it needs is an
executable on PATH. This module finds them and reports what is missing.
"""
import logging
import re
import shutil
import subprocess
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

VERSION_TIMEOUT = 10


@dataclass
class DependencyInfo:
    """Information about an external executable."""
    name: str
    command: str
    installed: bool = False
    version: Optional[str] = None
    path: Optional[str] = None
    meets_minimum: bool = True
    minimum_version: Optional[str] = None
    required: bool = False
    error_message: Optional[str] = None


@dataclass
class DependencyReport:
    """Complete dependency validation report."""
    dependencies: Dict[str, DependencyInfo] = field(default_factory=dict)
    all_required_met: bool = True
    missing_required: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def is_ready(self) -> bool:
        """Check if all required dependencies are met."""
        return self.all_required_met and not self.missing_required

    def summary(self) -> str:
        """Generate summary string."""
        lines = ["Dependency Status:"]
        for name, info in self.dependencies.items():
            status = "OK" if info.installed and info.meets_minimum else "MISSING"
            version = f"v{info.version}" if info.version else "unknown"
            lines.append(f"  {name}: {status} ({version})")

        if self.warnings:
            lines.append("\nWarnings:")
            for warning in self.warnings:
                lines.append(f"  - {warning}")

        return "\n".join(lines)


def compare_versions(version1: str, version2: str) -> int:
    """Compare two version strings.

    Returns:
        -1 if version1 < version2
         0 if version1 == version2
         1 if version1 > version2
    """
    def normalize(v: str) -> List[int]:
        v = re.sub(r'^[vVn]', '', v)
        v = re.sub(r'[-_].*$', '', v)
        parts = re.findall(r'\d+', v)
        return [int(p) for p in parts] if parts else [0]

    v1_parts = normalize(version1)
    v2_parts = normalize(version2)

    max_len = max(len(v1_parts), len(v2_parts))
    v1_parts.extend([0] * (max_len - len(v1_parts)))
    v2_parts.extend([0] * (max_len - len(v2_parts)))

    for p1, p2 in zip(v1_parts, v2_parts):
        if p1 < p2:
            return -1
        if p1 > p2:
            return 1

    return 0


def find_program(names: Sequence[str]) -> Optional[Tuple[str, str]]:
    """Return ``(name, path)`` of the first executable found on PATH.

    Args:
        names: Candidate executable names, most preferred first
    """
    for name in names:
        path = shutil.which(name)
        if path:
            return name, path
    return None


def _probe_version(command: str, pattern: str) -> Optional[str]:
    result = subprocess.run(
        [command, "-version"],
        capture_output=True,
        text=True,
        timeout=VERSION_TIMEOUT,
    )
    match = re.search(pattern, result.stdout)
    return match.group(1) if match else None


def check_ffmpeg(command: str = "ffmpeg") -> DependencyInfo:
    """Check FFmpeg installation and version.

    Returns:
        DependencyInfo for FFmpeg
    """
    info = DependencyInfo(
        name="FFmpeg",
        command=command,
        minimum_version="4.0",
        required=True,
    )

    path = shutil.which(command)
    if not path:
        info.error_message = f"{command} not found in PATH"
        return info

    info.path = path
    info.installed = True

    try:
        info.version = _probe_version(command, r'ffmpeg version (\S+)')
        if info.version and info.minimum_version:
            info.meets_minimum = compare_versions(info.version, info.minimum_version) >= 0
    except subprocess.TimeoutExpired:
        info.error_message = "ffmpeg version check timed out"
    except OSError as e:
        info.error_message = str(e)

    return info


def check_ffprobe() -> DependencyInfo:
    """Check ffprobe installation.

    ffprobe is optional: without it the frame height falls back to 16:9.
    """
    info = DependencyInfo(name="ffprobe", command="ffprobe")

    path = shutil.which("ffprobe")
    if not path:
        info.error_message = "ffprobe not found in PATH"
        return info

    info.path = path
    info.installed = True

    try:
        info.version = _probe_version("ffprobe", r'ffprobe version (\S+)')
    except (subprocess.TimeoutExpired, OSError) as e:
        info.error_message = str(e)

    return info


def check_audio_backends(names: Sequence[str]) -> List[DependencyInfo]:
    """Check every candidate audio player, keeping preference order."""
    results = []
    for name in names:
        info = DependencyInfo(name=name, command=name)
        path = shutil.which(name)
        if path:
            info.installed = True
            info.path = path
        else:
            info.error_message = f"{name} not found in PATH"
        results.append(info)
    return results


def validate_all_dependencies(
    renderer: str = "ffmpeg",
    audio_backends: Sequence[str] = (),
) -> DependencyReport:
    """Validate the renderer and audio players.

    Args:
        renderer: Executable producing frames
        audio_backends: Audio players in order of preference

    Returns:
        DependencyReport with one entry per executable
    """
    report = DependencyReport()

    if renderer == "ffmpeg":
        renderer_info = check_ffmpeg()
    else:
        renderer_info = DependencyInfo(name=renderer, command=renderer, required=True)
        path = shutil.which(renderer)
        renderer_info.installed = path is not None
        renderer_info.path = path
    report.dependencies[renderer] = renderer_info

    if not renderer_info.installed:
        report.all_required_met = False
        report.missing_required.append(renderer)
    elif not renderer_info.meets_minimum:
        report.warnings.append(
            f"{renderer} {renderer_info.version} is older than {renderer_info.minimum_version}"
        )

    if renderer == "ffmpeg":
        ffprobe_info = check_ffprobe()
        report.dependencies["ffprobe"] = ffprobe_info
        if not ffprobe_info.installed:
            report.warnings.append("ffprobe missing: frame height falls back to 16:9")

    audio_infos = check_audio_backends(audio_backends)
    for info in audio_infos:
        report.dependencies[info.name] = info
    if audio_backends and not any(info.installed for info in audio_infos):
        report.warnings.append(
            "No audio player found (tried: " + ", ".join(audio_backends) + "); playback will be silent"
        )

    logger.debug(f"Dependency report: {report.summary()}")
    return report
