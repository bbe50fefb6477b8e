"""Tests for the command line interface."""

from unittest.mock import patch

import pytest
import soundfile as sf
from click.testing import CliRunner

from conftest import ScriptedEngine, stream
from fretline import config
from fretline.cli.main import main
from fretline.storage.recording_file import load, save


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def global_settings(settings, monkeypatch):
    """Make the small test geometry the global settings."""
    monkeypatch.setattr(config, "_settings", settings)
    return settings


@pytest.fixture
def saved(build_recording):
    """A recording of three sections saved as 'Riff'."""
    return save(build_recording(5, 4, 6))


class TestInfoCommands:
    """Tests for read-only commands."""

    def test_version(self, runner):
        """--version prints the version."""
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert "fretline" in result.output

    def test_info(self, runner):
        """info shows the configured geometry."""
        result = runner.invoke(main, ["info"])

        assert result.exit_code == 0
        assert "Frame size: 16" in result.output

    def test_tunings(self, runner):
        """tunings lists the built-in tunings."""
        result = runner.invoke(main, ["tunings"])

        assert result.exit_code == 0
        assert "Standard Guitar" in result.output
        assert "E2 A2 D3 G3 B3 E4" in result.output

    def test_list_empty(self, runner):
        """list reports an empty catalog."""
        result = runner.invoke(main, ["list"])

        assert result.exit_code == 0
        assert "No recordings yet" in result.output

    def test_list(self, runner, saved):
        """list shows saved recordings."""
        result = runner.invoke(main, ["list"])

        assert result.exit_code == 0
        assert "Riff" in result.output
        assert "6s" in result.output

    def test_show(self, runner, saved):
        """show prints one row per section and the notes."""
        result = runner.invoke(main, ["show", "Riff", "--notes"])

        assert result.exit_code == 0
        assert "9-15" in result.output
        assert "E2" in result.output

    def test_show_by_path(self, runner, saved):
        """A recording can be given by its path."""
        result = runner.invoke(main, ["show", str(saved)])

        assert result.exit_code == 0

    def test_show_missing(self, runner):
        """Unknown recordings are an error."""
        result = runner.invoke(main, ["show", "Nothing"])

        assert result.exit_code == 1
        assert "not found" in result.output


class TestEditCommands:
    """Tests for commands that change a recording."""

    def test_cut(self, runner, saved, settings):
        """cut splits a section and writes the file back."""
        result = runner.invoke(main, ["cut", "Riff", "7"])

        assert result.exit_code == 0
        assert len(load(saved, settings).sections) == 4

    def test_rejected_cut(self, runner, saved, settings):
        """A cut that would leave a short section changes nothing."""
        result = runner.invoke(main, ["cut", "Riff", "1"])

        assert result.exit_code == 1
        assert "Nothing changed" in result.output
        assert len(load(saved, settings).sections) == 3

    def test_move(self, runner, saved, settings):
        """move re-inserts a section."""
        result = runner.invoke(main, ["move", "Riff", "0", "3"])

        assert result.exit_code == 0
        loaded = load(saved, settings)
        assert [len(s.time_steps) for s in loaded.sections] == [4, 6, 5]

    def test_swap(self, runner, saved, settings):
        """swap exchanges two sections."""
        result = runner.invoke(main, ["swap", "Riff", "0", "2"])

        assert result.exit_code == 0
        loaded = load(saved, settings)
        assert [len(s.time_steps) for s in loaded.sections] == [6, 4, 5]

    def test_swap_bad_index(self, runner, saved):
        """Indices outside the recording are an error."""
        result = runner.invoke(main, ["swap", "Riff", "0", "9"])

        assert result.exit_code == 1

    def test_remove(self, runner, saved, settings):
        """remove drops a section."""
        result = runner.invoke(main, ["remove", "Riff", "1"])

        assert result.exit_code == 0
        loaded = load(saved, settings)
        assert [len(s.time_steps) for s in loaded.sections] == [5, 6]

    def test_delete(self, runner, saved):
        """delete removes the file after confirmation."""
        result = runner.invoke(main, ["delete", "Riff"], input="n\n")
        assert result.exit_code == 1
        assert saved.exists()

        result = runner.invoke(main, ["delete", "Riff", "--yes"])
        assert result.exit_code == 0
        assert not saved.exists()


class TestRecordCommand:
    """Tests for the record command."""

    def test_missing_file(self, runner, tmp_path):
        """A missing audio file is an error."""
        result = runner.invoke(main, ["record", str(tmp_path / "none.wav")])

        assert result.exit_code == 1

    def test_unknown_tuning(self, runner, tmp_path):
        """Unknown tunings are an error."""
        audio = tmp_path / "take.wav"
        sf.write(audio, [0.0] * 100, 8000)

        result = runner.invoke(main, ["record", str(audio), "--tuning", "Banjo"])

        assert result.exit_code == 1
        assert "Unknown tuning" in result.output

    def test_record(self, runner, tmp_path, monkeypatch, settings, saved):
        """record transcribes a file under a free name."""
        audio_settings = settings.model_copy(update={"sample_rate": 8000})
        monkeypatch.setattr(config, "_settings", audio_settings)
        audio = tmp_path / "take.wav"
        sf.write(audio, stream(audio_settings, 10) / 100.0, 8000, subtype="FLOAT")

        with patch(
            "fretline.engine.spectral.SpectralEngine",
            return_value=ScriptedEngine(audio_settings),
        ):
            result = runner.invoke(main, ["record", str(audio), "--name", "Riff"])

        assert result.exit_code == 0, result.output
        path = settings.recordings_dir / "Riff 1.rec"
        recording = load(path, audio_settings)
        assert recording.name == "Riff 1"
        assert recording.time_step_length == 10
