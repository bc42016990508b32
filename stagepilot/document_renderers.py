"""Renderer implementations for compiled document output formats."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import asdict

from stagepilot.document_models import DocumentViewModel, StageplanBox, StageplanPlan


def _escape_html(text: str) -> str:
    """Escape the three characters that are unsafe in HTML text content."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


class DocumentRenderer(ABC):
    """Abstract document renderer."""

    @property
    @abstractmethod
    def default_extension(self) -> str:
        """Default filename extension for this renderer."""

    @abstractmethod
    def render(self, *, document: DocumentViewModel) -> str:
        """Render a compiled document into a file content string."""


class HtmlDocumentRenderer(DocumentRenderer):
    """Render a document as a printable A4 HTML page: input list, monitors, notes, stage plan."""

    @property
    def default_extension(self) -> str:
        return ".html"

    def render(self, *, document: DocumentViewModel) -> str:
        meta = document.meta
        title = f"{meta.band_name} – Inputlist & Stageplan"
        return self.build_html(
            title,
            [
                self._meta_section(document),
                self._input_section(document),
                self._monitor_section(document),
                self._notes_section(document.notes.monitors, "Monitory – poznámky"),
                self._stageplan_section(document.stageplan_plan),
            ],
        )

    def _meta_section(self, document: DocumentViewModel) -> str:
        meta = document.meta
        line = meta.meta_line
        if line.kind == "labeled" and line.label:
            meta_html = f"<strong>{_escape_html(line.label)}</strong> {_escape_html(line.value)}"
        else:
            meta_html = _escape_html(line.value)
        contact = f'  <p class="contact">{_escape_html(meta.contact_line)}</p>\n' if meta.contact_line else ""
        return (
            '<section class="meta">\n'
            f"  <h1>{_escape_html(meta.band_name)}</h1>\n"
            f'  <p class="meta-line">{meta_html}</p>\n'
            f"{contact}"
            "</section>"
        )

    def _input_section(self, document: DocumentViewModel) -> str:
        rows = "\n".join(
            f"      <tr><td>{_escape_html(row.no)}</td><td>{_escape_html(row.label)}</td>"
            f"<td>{_escape_html(row.note or '')}</td></tr>"
            for row in document.input_rows
        )
        notes = self._notes_list(document.notes.inputs)
        return (
            '<section class="inputs">\n'
            "  <h2>Input list</h2>\n"
            "  <table>\n"
            "    <thead><tr><th>Ch</th><th>Input</th><th>Note</th></tr></thead>\n"
            f"    <tbody>\n{rows}\n    </tbody>\n"
            "  </table>\n"
            f"{notes}"
            "</section>"
        )

    def _monitor_section(self, document: DocumentViewModel) -> str:
        rows = "\n".join(
            f"      <tr><td>{row.no}</td><td>{_escape_html(row.output)}</td><td>{_escape_html(row.note)}</td></tr>"
            for row in document.monitor_table_rows
        )
        return (
            '<section class="monitors">\n'
            "  <h2>Monitor mixes</h2>\n"
            "  <table>\n"
            "    <thead><tr><th>No</th><th>Output</th><th>Note</th></tr></thead>\n"
            f"    <tbody>\n{rows}\n    </tbody>\n"
            "  </table>\n"
            "</section>"
        )

    def _notes_list(self, lines: tuple[str, ...]) -> str:
        if not lines:
            return ""
        items = "\n".join(f"    <li>{_escape_html(line)}</li>" for line in lines)
        return f'  <ul class="notes">\n{items}\n  </ul>\n'

    def _notes_section(self, lines: tuple[str, ...], heading: str) -> str:
        if not lines:
            return ""
        return f'<section class="notes">\n  <h3>{_escape_html(heading)}</h3>\n{self._notes_list(lines)}</section>'

    def _box(self, box: StageplanBox) -> str:
        pos = box.position
        style = (
            f"left:{pos.x_mm:.2f}mm;top:{pos.y_mm:.2f}mm;width:{pos.width_mm:.2f}mm;"
            f"height:{pos.height_mm:.2f}mm;font-size:{box.font_size_pt:g}pt;line-height:{box.line_height:g}"
        )
        # One list per non-empty section; the layout reserves a blank line between them.
        sections = [box.input_bullets, box.monitor_bullets, box.extra_bullets]
        lists = "".join(
            "<ul>" + "".join(f"<li>{_escape_html(text)}</li>" for text in bullets) + "</ul>"
            for bullets in sections
            if bullets
        )
        power = f'<div class="power">{_escape_html(box.power_badge)}</div>' if box.power_badge else ""
        return (
            f'    <div class="box box-{box.row}" data-slot="{box.slot}" style="{style}">'
            f'<div class="box-title">{_escape_html(box.header)}</div>{lists}{power}</div>'
        )

    def _stageplan_section(self, plan: StageplanPlan) -> str:
        boxes = "\n".join(self._box(box) for box in plan.boxes)
        return (
            f'<section class="stageplan" data-layout="{plan.layout_id}">\n'
            f"  <h2>{_escape_html(plan.heading)}</h2>\n"
            f'  <div class="stage" style="width:{plan.area_width_mm:.2f}mm;height:{plan.area_height_mm:.2f}mm">\n'
            f"{boxes}\n"
            "  </div>\n"
            "</section>"
        )

    def build_html(self, title: str, sections: list[str]) -> str:
        """
        Wrap rendered sections in a self-contained HTML document.

        The stage plan starts on its own page when printed; every box is
        positioned absolutely in millimetres so print output matches the
        computed layout.
        """
        title_safe = _escape_html(title)
        body = "\n".join(section for section in sections if section)

        return f"""<!DOCTYPE html>
<html lang="cs">
<head>
  <meta charset="UTF-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1.0" />
  <title>{title_safe}</title>
  <style>
    *, *::before, *::after {{ box-sizing: border-box; }}
    body {{
      font-family: Helvetica, Arial, sans-serif;
      font-size: 10pt;
      color: #111;
      margin: 0 auto;
      max-width: 210mm;
      padding: 20mm 15mm 15mm;
    }}
    h1 {{ font-size: 20pt; margin: 0 0 4pt; }}
    h2 {{ font-size: 14pt; margin: 16pt 0 6pt; }}
    h3 {{ font-size: 11pt; margin: 10pt 0 4pt; }}
    table {{ border-collapse: collapse; width: 100%; }}
    th, td {{ border: 1px solid #444; padding: 2pt 6pt; text-align: left; }}
    th {{ background: #eee; }}
    td:first-child {{ width: 14mm; white-space: nowrap; }}
    .stage {{ position: relative; margin-top: 24pt; }}
    .box {{
      position: absolute;
      border: 1px solid #222;
      padding: 4pt 6pt 2pt;
      overflow: hidden;
    }}
    .box-title {{ font-weight: bold; margin-bottom: 6pt; }}
    .box ul {{ margin: 0; padding-left: 12pt; }}
    .box ul + ul {{ margin-top: 1lh; }}
    .power {{ position: absolute; right: 4pt; bottom: 2pt; font-size: 8pt; }}
    @media print {{
      @page {{ size: A4 portrait; margin: 0; }}
      body {{ max-width: none; }}
      .stageplan {{ page-break-before: always; }}
    }}
  </style>
</head>
<body>
{body}
</body>
</html>"""


class JsonDocumentRenderer(DocumentRenderer):
    """Serialize the whole document view model as JSON."""

    @property
    def default_extension(self) -> str:
        return ".json"

    def render(self, *, document: DocumentViewModel) -> str:
        return json.dumps(asdict(document), ensure_ascii=False, indent=2)
