"""LibreOffice-backed conversion for Office files the Python parsers cannot read.

# ─── DESIGN ────────────────────────────────────────────────────────────
#
# Legacy binary Office files (.doc, .ppt) and damaged OOXML files that
# python-docx / python-pptx reject can often still be opened by
# LibreOffice.  This is the last strategy in the Word and presentation
# fallback chains:
#
#   .doc / .docx / .rtf  → TXT  via soffice --convert-to txt:Text
#   .ppt / .pptx         → PDF  via soffice --convert-to pdf, then the
#                               PDF text layer is read with PyMuPDF
#
# Impress has no plain-text export filter, hence the PDF hop.
#
# Binary detection happens at call time, not at init, so a host without
# LibreOffice still extracts everything the pure-Python parsers handle.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

import fitz  # PyMuPDF
import structlog

from src.utils.errors import ExtractionFailedError
from src.utils.temp_files import temporary_workspace

logger = structlog.get_logger(logger_name=__name__)

_PDF_ROUTE_SUFFIXES = frozenset({".ppt", ".pptx", ".odp"})


class OfficeConverter:
    """Converts Office documents to text by shelling out to headless LibreOffice.

    Parameters
    ----------
    temp_root:
        Parent directory for the per-call temporary workspace (system temp
        dir when ``None``).  The workspace is always removed on exit.
    timeout:
        Seconds to wait for LibreOffice before killing it.
    """

    def __init__(self, temp_root: str | Path | None = None, timeout: float = 120.0) -> None:
        self._temp_root = temp_root
        self._timeout = timeout

    @staticmethod
    def find_binary() -> str | None:
        return shutil.which("libreoffice") or shutil.which("soffice")

    def is_available(self) -> bool:
        return self.find_binary() is not None

    def get_provider_name(self) -> str:
        return "libreoffice"

    async def convert_to_text(self, data: bytes, suffix: str) -> str:
        """Convert an Office file's bytes to plain text.

        Raises
        ------
        ExtractionFailedError
            If LibreOffice is missing, times out, or produces no output.
        """
        binary = self.find_binary()
        if binary is None:
            raise ExtractionFailedError(
                "LibreOffice not installed (looked for 'libreoffice' and 'soffice')",
                provider_name=self.get_provider_name(),
            )

        route_via_pdf = suffix.lower() in _PDF_ROUTE_SUFFIXES
        target = "pdf" if route_via_pdf else "txt:Text"

        with temporary_workspace(prefix="docvault-office-", root=self._temp_root) as workspace:
            source = workspace / f"source{suffix.lower()}"
            out_dir = workspace / "out"
            await asyncio.to_thread(source.write_bytes, data)

            await self._run(binary, target, source, out_dir)

            output = out_dir / ("source.pdf" if route_via_pdf else "source.txt")
            if not output.exists():
                raise ExtractionFailedError(
                    "LibreOffice conversion produced no output",
                    provider_name=self.get_provider_name(),
                )
            if route_via_pdf:
                text = await asyncio.to_thread(_read_pdf_text_layer, output)
            else:
                text = await asyncio.to_thread(output.read_text, encoding="utf-8", errors="replace")

        logger.info("office_document_converted", suffix=suffix, characters=len(text))
        return text

    async def _run(self, binary: str, target: str, source: Path, out_dir: Path) -> None:
        proc = await asyncio.create_subprocess_exec(
            binary, "--headless", "--convert-to", target,
            "--outdir", str(out_dir), str(source),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            proc.kill()
            await proc.wait()
            raise ExtractionFailedError(
                f"LibreOffice conversion timed out after {self._timeout:.0f}s",
                provider_name=self.get_provider_name(),
            ) from exc

        if proc.returncode != 0:
            raise ExtractionFailedError(
                f"LibreOffice conversion failed: {stderr.decode(errors='replace')[:500]}",
                provider_name=self.get_provider_name(),
            )


def _read_pdf_text_layer(path: Path) -> str:
    doc = fitz.open(str(path))
    try:
        return "\n\n".join(page.get_text() for page in doc)
    finally:
        doc.close()
