"""Tests for DocumentExporter file output."""

from pathlib import Path

import pytest

from builders import make_repo
from stagepilot.document_compiler import DocumentCompiler
from stagepilot.document_exporter import DocumentExporter
from stagepilot.errors import NotFoundError


def test_export_uses_export_file_name(tmp_path: Path) -> None:
    exporter = DocumentExporter(DocumentCompiler(make_repo()))
    path = exporter.export("gig", output_dir=tmp_path / "riders")
    assert path == tmp_path / "riders" / "NB_Inputlist_Stageplan_07-03-2026_Lucerna.html"
    assert path.read_text(encoding="utf-8").startswith("<!DOCTYPE html>")


def test_write_takes_compiled_document(tmp_path: Path) -> None:
    compiler = DocumentCompiler(make_repo())
    exporter = DocumentExporter(compiler, output_format="JSON")
    path = exporter.write(compiler.compile("gig"), output_path=tmp_path / "rider.json")
    assert path == tmp_path / "rider.json"
    assert '"layout_id": "layout_5_party"' in path.read_text(encoding="utf-8")


def test_failed_compile_writes_nothing(tmp_path: Path) -> None:
    exporter = DocumentExporter(DocumentCompiler(make_repo()))
    with pytest.raises(NotFoundError):
        exporter.export("nope", output_dir=tmp_path)
    assert list(tmp_path.iterdir()) == []


def test_unknown_format() -> None:
    with pytest.raises(ValueError, match="Unsupported output format 'pdf'"):
        DocumentExporter(DocumentCompiler(make_repo()), output_format="pdf")
