"""DocumentExporter: compiles a project and writes it as HTML or JSON."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Final

from stagepilot.document_compiler import DocumentCompiler
from stagepilot.document_models import DocumentViewModel
from stagepilot.document_renderers import DocumentRenderer, HtmlDocumentRenderer, JsonDocumentRenderer

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS: Final[set[str]] = {"html", "json"}


class DocumentExporter:
    """
    Write a compiled project through a pluggable renderer.

    Supported formats:
    - ``html``: printable page with the input list, monitor table and stage plan.
    - ``json``: the full document view model.
    """

    def __init__(self, compiler: DocumentCompiler, output_format: str = "html") -> None:
        self.compiler = compiler
        normalized = output_format.strip().lower()
        if normalized not in SUPPORTED_FORMATS:
            supported = ", ".join(sorted(SUPPORTED_FORMATS))
            raise ValueError(f"Unsupported output format '{output_format}'. Use one of: {supported}.")
        self.output_format = normalized
        self.renderer = self._build_renderer(normalized)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build_renderer(self, output_format: str) -> DocumentRenderer:
        if output_format == "html":
            return HtmlDocumentRenderer()
        return JsonDocumentRenderer()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def default_output_path(self, document: DocumentViewModel, output_dir: str | Path) -> Path:
        """``{output_dir}/{export file name}{extension}``."""
        name = document.meta.export_file_name or document.meta.project_id
        return Path(output_dir) / f"{name}{self.renderer.default_extension}"

    def render(self, document: DocumentViewModel) -> str:
        return self.renderer.render(document=document)

    def export(self, project_id: str, output_path: str | Path | None = None, output_dir: str | Path = ".") -> Path:
        """
        Compile ``project_id`` and write it to disk.

        Raises:
            StagePilotError: If compilation fails. Nothing is written in that case.
            OSError: If the output file cannot be written.
        """
        return self.write(self.compiler.compile(project_id), output_path=output_path, output_dir=output_dir)

    def write(
        self, document: DocumentViewModel, output_path: str | Path | None = None, output_dir: str | Path = "."
    ) -> Path:
        """Render an already compiled document and write it to disk."""
        path = Path(output_path) if output_path is not None else self.default_output_path(document, output_dir)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as fh:
            fh.write(self.render(document))
        logger.info("Wrote %s", path)
        return path
