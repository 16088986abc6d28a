"""Tests for console status output."""
import io

from termreel.ui import Console


class TestConsole:
    """Tests for Console."""

    def test_banner(self, make_config):
        output = io.StringIO()
        Console(file=output).banner(make_config(fps=12, width=60))
        text = output.getvalue()
        assert "Playing" in text
        assert "fps=12" in text
        assert "height=auto" in text

    def test_quiet_hides_status(self):
        output = io.StringIO()
        console = Console(quiet=True, file=output)
        console.info("hidden")
        console.warning("hidden")
        console.success("hidden")
        assert output.getvalue() == ""

    def test_error_with_hint(self):
        output = io.StringIO()
        Console(quiet=True, file=output).error("broken", hint="try again")
        text = output.getvalue()
        assert "broken" in text
        assert "Hint: try again" in text

    def test_brackets_not_treated_as_markup(self):
        output = io.StringIO()
        Console(file=output).error("Renderer exited [returncode=1, stderr=bad]")
        assert "[returncode=1, stderr=bad]" in output.getvalue()
