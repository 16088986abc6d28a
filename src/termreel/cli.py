"""Command line interface for termreel."""
import argparse
import shlex
import sys
from typing import Callable, List, Optional

from . import __version__
from .config import (
    DEFAULT_AUDIO_BACKENDS,
    DEFAULT_BUFFER_FRAMES,
    DEFAULT_FPS,
    DEFAULT_GRACE_PERIOD,
    DEFAULT_WIDTH,
    PlaybackConfig,
)
from .exceptions import EXIT_LAUNCH, EXIT_OK, ConfigurationError, LaunchError, TermreelError
from .playback.launcher import RENDERER_EXECUTABLE
from .playback.supervisor import PlaybackSupervisor
from .ui import Console
from .utils.dependencies import validate_all_dependencies
from .utils.logging import configure_from_cli, get_cli_args_parser, get_logger

logger = get_logger("cli")


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog='termreel',
        description='Play videos in the terminal as ASCII/ANSI art, with optional sound',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Truecolor playback at 24 fps, 80 columns wide
  termreel movie.mp4

  # Character-ramp playback without sound
  termreel movie.mp4 --no-color --no-sound --fps 12 --width 120

  # Custom renderer writing ANSI frames separated by cursor-home
  termreel movie.mp4 --renderer-cmd "myrenderer --fps {fps} {input}" --frame-delimiter '\\x1b[H'

  # Show which external tools were found
  termreel --check-deps
        """
    )

    parser.add_argument('input', nargs='?', help='Video file to play')
    parser.add_argument('--fps', type=int, default=DEFAULT_FPS,
                        help=f'Target frame rate (default: {DEFAULT_FPS})')
    parser.add_argument('--width', type=int, default=DEFAULT_WIDTH,
                        help=f'Frame width in terminal columns (default: {DEFAULT_WIDTH})')
    parser.add_argument('--height', type=int, default=None,
                        help='Frame height in terminal rows (default: from the video aspect ratio)')
    parser.add_argument('--no-sound', action='store_true', help='Do not start an audio player')
    parser.add_argument('--no-color', action='store_true',
                        help='Use a luminance character ramp instead of truecolor cells')
    parser.add_argument('--no-alt-screen', action='store_true',
                        help='Draw on the main screen instead of the alternate screen')
    parser.add_argument('--grace-period', type=float, default=DEFAULT_GRACE_PERIOD,
                        help=f'Seconds subprocesses get to exit before being killed (default: {DEFAULT_GRACE_PERIOD})')
    parser.add_argument('--buffer-frames', type=int, default=DEFAULT_BUFFER_FRAMES,
                        help=f'Frames buffered ahead of the display (default: {DEFAULT_BUFFER_FRAMES})')
    parser.add_argument('--renderer-cmd', type=shlex.split, default=None,
                        help='Custom ANSI renderer command; {input}, {fps}, {width}, {height} are substituted')
    parser.add_argument('--frame-delimiter', type=str, default=None,
                        help=r'Byte sequence between frames of a custom renderer (default: \x1b[2J)')
    parser.add_argument('--audio-backend', action='append', default=None,
                        help='Audio player to try, repeatable, in order of preference '
                             f'(default: {", ".join(DEFAULT_AUDIO_BACKENDS)})')
    parser.add_argument('--check-deps', action='store_true',
                        help='Report the external tools termreel can find and exit')
    parser.add_argument('-q', '--quiet', action='store_true', help='Only print errors')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    for flags, kwargs in get_cli_args_parser():
        parser.add_argument(*flags, **kwargs)

    return parser


def check_dependencies(args: argparse.Namespace, console: Console) -> int:
    """Print the dependency report; non-zero exit if the renderer is missing."""
    renderer = args.renderer_cmd[0] if args.renderer_cmd else RENDERER_EXECUTABLE
    backends = args.audio_backend or list(DEFAULT_AUDIO_BACKENDS)
    report = validate_all_dependencies(renderer=renderer, audio_backends=backends)
    console.dependency_report(report)
    return EXIT_OK if report.is_ready() else EXIT_LAUNCH


def play(
    config: PlaybackConfig,
    console: Console,
    supervisor_factory: Callable[[PlaybackConfig], PlaybackSupervisor] = PlaybackSupervisor,
) -> int:
    """Run one playback and translate its outcome into an exit code."""
    console.banner(config)
    supervisor = supervisor_factory(config)
    try:
        result = supervisor.run()
    except LaunchError as e:
        logger.debug("Playback could not start", **e.to_dict())
        console.error(str(e), hint="Run 'termreel --check-deps' to see which tools were found")
        return e.exit_code
    except TermreelError as e:
        logger.debug("Playback failed", **e.to_dict())
        console.error(str(e))
        return e.exit_code
    except KeyboardInterrupt:
        supervisor.stop()
        console.warning("Playback interrupted")
        return EXIT_OK

    for warning in result.warnings:
        console.warning(warning)
    if result.interrupted:
        console.info(f"Playback stopped after {result.frames_displayed} frames")
    else:
        console.success(f"Played {result.frames_displayed} frames")
    return result.exit_code


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point; returns the process exit code."""
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_from_cli(args.log_level, args.log_format, args.log_file, args.log_component)
    console = Console(quiet=args.quiet)

    if args.check_deps:
        return check_dependencies(args, console)

    if not args.input:
        parser.error('the following arguments are required: input')

    try:
        config = PlaybackConfig.from_args(args)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        console.error(str(e))
        return e.exit_code

    return play(config, console)


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == '__main__':
    run()
