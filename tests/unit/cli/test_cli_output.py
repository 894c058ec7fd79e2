"""Unit tests for cli.output module."""

import pytest

from src.cli.output import OutputHandler
from src.page_service.models import SaveResult
from src.sync_engine.models import PropagationResult, SyncStrategy, TranslationFailure
from src.translation_status.models import (
    LocaleStatus,
    NodeTranslationStatus,
    TranslationCoverage,
    TranslationReport,
)
from src.tree_differ.models import OperationType, StructuralDiff, StructuralOperation


class TestOutputHandlerInit:
    """Test cases for OutputHandler initialization."""

    def test_init_default_verbosity_and_color(self):
        handler = OutputHandler()

        assert handler.verbosity == 0
        assert handler.console.no_color is False

    def test_init_no_color_true(self):
        assert OutputHandler(no_color=True).console.no_color is True


class TestMessages:
    """Test cases for status messages and verbosity."""

    def test_success_error_warning(self, capsys):
        handler = OutputHandler(no_color=True)

        handler.success("Saved")
        handler.error("Broken")
        handler.warning("Careful")

        out = capsys.readouterr().out
        assert "✓ Saved" in out
        assert "✗ Broken" in out
        assert "⚠ Careful" in out

    @pytest.mark.parametrize("verbosity,shows_info,shows_debug", [
        (0, False, False),
        (1, True, False),
        (2, True, True),
    ])
    def test_verbosity_levels(self, capsys, verbosity, shows_info, shows_debug):
        handler = OutputHandler(verbosity=verbosity, no_color=True)

        handler.info("info line")
        handler.debug("debug line")

        out = capsys.readouterr().out
        assert ("info line" in out) is shows_info
        assert ("debug line" in out) is shows_debug

    def test_print_does_not_interpret_markup(self, capsys):
        OutputHandler(no_color=True).print("[red]literal[/red]")

        assert "[red]literal[/red]" in capsys.readouterr().out


class TestPrintDiff:
    """Test cases for OutputHandler.print_diff()."""

    def test_empty_diff(self, capsys):
        OutputHandler(no_color=True).print_diff(StructuralDiff())

        assert "No structural changes" in capsys.readouterr().out

    def test_lists_operations(self, capsys):
        diff = StructuralDiff([
            StructuralOperation(OperationType.DELETE, "B1"),
            StructuralOperation(
                OperationType.INSERT, "T2", component_type="Text", parent_id="S1", position=0
            ),
        ])

        OutputHandler(no_color=True).print_diff(diff)

        out = capsys.readouterr().out
        assert "Structural changes (2):" in out
        assert "- delete 'B1'" in out
        assert "+ insert Text 'T2' under 'S1' at 0" in out


class TestPrintSaveSummary:
    """Test cases for OutputHandler.print_save_summary()."""

    def test_summary(self, capsys):
        propagation = PropagationResult(
            applied={"fi": 3, "sv": 2},
            skipped={"fi": 1},
            seeded_locales=["sv"],
            failures=[TranslationFailure("sv", "T1", "text", "quota exceeded")],
        )
        result = SaveResult(
            page_id="p1",
            locale="en",
            version="v5",
            strategy=SyncStrategy.STRUCTURE_ONLY,
            diff=StructuralDiff([StructuralOperation(OperationType.DELETE, "B1")]),
            propagation=propagation,
        )

        OutputHandler(no_color=True).print_save_summary(result)

        out = capsys.readouterr().out
        assert "Save Summary (structure-only):" in out
        assert "Structural changes: 1" in out
        assert "fi: 3 applied, 1 skipped" in out
        assert "sv: 2 applied (created)" in out
        assert "Translation failed for 1 value(s)" in out
        assert "sv T1.text: quota exceeded" in out
        assert "Saved as version v5" in out


class TestPrintTranslationReport:
    """Test cases for OutputHandler.print_translation_report()."""

    def test_report(self, capsys):
        report = TranslationReport(
            page_id="p1",
            default_locale="en",
            missing_locales={"sv"},
            coverage={
                "fi": TranslationCoverage("fi", total=2, translated=1, missing=1, percentage=50),
                "sv": TranslationCoverage("sv", total=2, translated=0, missing=2, percentage=0),
            },
            needs_review={"fi": ["T1"]},
            nodes=[
                NodeTranslationStatus("T1", "Text", {
                    "en": LocaleStatus.SOURCE,
                    "fi": LocaleStatus.AUTO,
                    "sv": LocaleStatus.MISSING,
                }),
            ],
        )

        OutputHandler(no_color=True).print_translation_report(report)

        out = capsys.readouterr().out
        assert "Translation status of p1" in out
        assert "auto" in out
        assert "fi: 50% (1/2, 1 missing)" in out
        assert "No content yet: sv" in out
        assert "Needs review in fi: T1" in out
