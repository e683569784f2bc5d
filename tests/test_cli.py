"""Tests for the form-engine CLI.

Runs ``main()`` against saved forms in a temporary directory and checks exit
codes, printed output, and stored submissions.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from form_engine.cli import _coerce_value, main
from form_engine.config.loader import CONFIG_ENV_VAR
from form_engine.fields.models import (
    DerivedSpec,
    Field,
    FieldType,
    FormSchema,
    ValidationSpec,
)
from form_engine.stores.json_file import JsonFileStore


@pytest.fixture
def forms_file(tmp_path, monkeypatch) -> Path:
    """Saved forms in an isolated working directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)

    path = tmp_path / "forms.json"
    JsonFileStore(path).save_schemas(
        [
            FormSchema(
                name="People",
                created_at="2025-01-01T00:00:00+00:00",
                fields=[
                    Field(id="first", label="First", required=True),
                    Field(id="last", label="Last", required=True),
                    Field(
                        id="full_name",
                        derived=DerivedSpec(parents=["first", "last"], formula="first + ' ' + last"),
                    ),
                    Field(id="dob", type="date"),
                    Field(
                        id="age",
                        type="number",
                        derived=DerivedSpec(parents=["dob"], formula="current_year() - year(dob)"),
                    ),
                    Field(id="email", validation=ValidationSpec(email=True)),
                ],
            ),
            FormSchema(
                name="Loop",
                created_at="2025-01-02T00:00:00+00:00",
                fields=[
                    Field(id="p", derived=DerivedSpec(parents=["q"], formula="q")),
                    Field(id="q", derived=DerivedSpec(parents=["p"], formula="p")),
                ],
            ),
        ]
    )
    return path


def _add_broken_form(forms_file: Path) -> None:
    store = JsonFileStore(forms_file)
    schemas = store.load_schemas()
    schemas.append(
        FormSchema(
            name="Broken",
            fields=[
                Field(id="dup"),
                Field(id="dup"),
                Field(id="pick", type="radio", options=[]),
            ],
        )
    )
    store.save_schemas(schemas)


ALL_PEOPLE_VALUES = [
    "--set", "first=Ada",
    "--set", "last=Lovelace",
    "--set", "dob=2000-01-01",
    "--set", "email=ada@example.com",
    "--today", "2025-06-01",
]


class TestArgumentParsing:
    """Tests for argument dispatch."""

    def test_command_required(self) -> None:
        """Running without a command exits with a usage error."""
        with pytest.raises(SystemExit):
            main([])

    def test_dispatches_to_command(self) -> None:
        """Subcommands route to their handler with the global options."""
        with patch("form_engine.cli.cmd_forms", return_value=0) as mock_forms:
            assert main(["--env-prefix", "APP_", "forms"]) == 0

        mock_forms.assert_called_once()
        args = mock_forms.call_args[0][0]
        assert args.env_prefix == "APP_"
        assert args.command == "forms"


class TestForms:
    """Tests for the forms command."""

    def test_lists_saved_forms(self, forms_file, capsys) -> None:
        assert main(["--forms", str(forms_file), "forms"]) == 0
        out = capsys.readouterr().out
        assert "People" in out
        assert "Loop" in out

    def test_no_forms(self, tmp_path, monkeypatch, capsys) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        assert main(["--forms", str(tmp_path / "none.json"), "forms"]) == 0
        assert "No saved forms" in capsys.readouterr().out

    def test_corrupt_store(self, tmp_path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        path = tmp_path / "forms.json"
        path.write_text("oops", encoding="utf-8")
        assert main(["--forms", str(path), "forms"]) == 1

    def test_forms_path_from_config(self, forms_file, capsys) -> None:
        """The store location can come from form-engine.toml."""
        (forms_file.parent / "form-engine.toml").write_text(
            '[store]\nforms = "forms.json"\n', encoding="utf-8"
        )
        assert main(["forms"]) == 0
        assert "People" in capsys.readouterr().out


class TestCheck:
    """Tests for the check command."""

    def test_sound_form(self, forms_file, capsys) -> None:
        assert main(["--forms", str(forms_file), "check", "People"]) == 0
        out = capsys.readouterr().out
        assert "Structure is valid" in out
        assert "full_name" in out

    def test_cyclic_form(self, forms_file, capsys) -> None:
        assert main(["--forms", str(forms_file), "check", "Loop"]) == 1
        assert "Dependency cycle: p, q" in capsys.readouterr().out

    def test_unknown_form(self, forms_file, capsys) -> None:
        assert main(["--forms", str(forms_file), "check", "Nope"]) == 1
        assert "not found" in capsys.readouterr().out

    def test_unsound_form_report(self, forms_file, capsys) -> None:
        """Violation codes are printed literally."""
        _add_broken_form(forms_file)

        assert main(["--forms", str(forms_file), "check", "Broken"]) == 1
        out = capsys.readouterr().out
        assert "Schema has 2 problem(s):" in out
        assert "[duplicate_id] dup" in out


class TestPreview:
    """Tests for the preview command."""

    def test_complete_values(self, forms_file, capsys) -> None:
        """Derived values resolve and no errors are reported."""
        assert main(["--forms", str(forms_file), "preview", "People", *ALL_PEOPLE_VALUES]) == 0
        assert "Progress: 100%" in capsys.readouterr().out

    def test_invalid_value(self, forms_file) -> None:
        """A touched field failing validation gives exit code 1."""
        args = ["--forms", str(forms_file), "preview", "People", "--set", "email=nope"]
        assert main(args) == 1

    def test_untouched_form_is_clean(self, forms_file, capsys) -> None:
        """Nothing is validated before it is edited."""
        assert main(["--forms", str(forms_file), "preview", "People"]) == 0
        assert "Progress: 0%" in capsys.readouterr().out

    def test_malformed_assignment(self, forms_file) -> None:
        assert main(["--forms", str(forms_file), "preview", "People", "--set", "first"]) == 1

    def test_unknown_field(self, forms_file) -> None:
        assert main(["--forms", str(forms_file), "preview", "People", "--set", "x=1"]) == 1

    def test_bad_today(self, forms_file) -> None:
        assert main(["--forms", str(forms_file), "preview", "People", "--today", "June"]) == 1

    def test_unsound_form_refused(self, forms_file, capsys) -> None:
        """A structurally unsound form is reported, not run."""
        _add_broken_form(forms_file)

        assert main(["--forms", str(forms_file), "preview", "Broken"]) == 1
        out = capsys.readouterr().out
        assert "structurally unsound" in out
        assert "[duplicate_id] dup" in out
        assert "[missing_options] pick" in out


class TestSubmit:
    """Tests for the submit command."""

    def test_rejected(self, forms_file, capsys) -> None:
        """Missing required fields reject the submission and store nothing."""
        args = ["--forms", str(forms_file), "submit", "People", "--set", "first=Ada"]
        assert main(args) == 1
        assert "1 field(s) invalid" in capsys.readouterr().out
        assert not (forms_file.parent / "submissions.json").exists()

    def test_accepted(self, forms_file, capsys) -> None:
        """A valid form is stored with its derived values."""
        args = ["--forms", str(forms_file), "submit", "People", *ALL_PEOPLE_VALUES]
        assert main(args) == 0
        assert "Submission stored" in capsys.readouterr().out

        stored = json.loads((forms_file.parent / "submissions.json").read_text(encoding="utf-8"))
        assert len(stored) == 1
        assert stored[0]["formName"] == "People"
        assert stored[0]["values"]["full_name"] == "Ada Lovelace"
        assert stored[0]["values"]["age"] == 25

    def test_unsound_form_refused(self, forms_file, capsys) -> None:
        """A structurally unsound form is never submitted."""
        _add_broken_form(forms_file)

        assert main(["--forms", str(forms_file), "submit", "Broken", "--set", "dup=x"]) == 1
        assert "structurally unsound" in capsys.readouterr().out
        assert not (forms_file.parent / "submissions.json").exists()


class TestCoerceValue:
    """Tests for _coerce_value()."""

    def test_empty_clears(self) -> None:
        assert _coerce_value(FieldType.TEXT, "") is None

    def test_numbers(self) -> None:
        assert _coerce_value(FieldType.NUMBER, "42") == 42
        assert _coerce_value(FieldType.NUMBER, "2.5") == 2.5

    def test_bad_number(self) -> None:
        with pytest.raises(ValueError):
            _coerce_value(FieldType.NUMBER, "lots")

    def test_checkbox(self) -> None:
        assert _coerce_value(FieldType.CHECKBOX, "A, B,") == ["A", "B"]
        assert _coerce_value(FieldType.CHECKBOX, '["A, B"]') == ["A, B"]

    def test_text_kept(self) -> None:
        assert _coerce_value(FieldType.DATE, "2000-01-01") == "2000-01-01"
