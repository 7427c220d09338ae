"""Unit tests for the LibreOffice converter (subprocess mocked)."""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.services.extraction.office_converter import OfficeConverter
from src.utils.errors import ExtractionFailedError


def _fake_soffice(output_text: str | None, returncode: int = 0):
    """Build a create_subprocess_exec stand-in that writes LibreOffice's output file."""

    async def _create(*args, **kwargs):
        out_dir = Path(args[args.index("--outdir") + 1])
        source = Path(args[-1])
        if output_text is not None and returncode == 0:
            out_dir.mkdir(parents=True, exist_ok=True)
            (out_dir / f"{source.stem}.txt").write_text(output_text, encoding="utf-8")
        proc = MagicMock()
        proc.returncode = returncode
        proc.communicate = AsyncMock(return_value=(b"", b"conversion error" if returncode else b""))
        proc.wait = AsyncMock(return_value=returncode)
        return proc

    return _create


class TestOfficeConverter:
    @pytest.mark.asyncio
    async def test_missing_binary(self, tmp_path: Path) -> None:
        converter = OfficeConverter(temp_root=tmp_path)

        with patch.object(OfficeConverter, "find_binary", return_value=None):
            with pytest.raises(ExtractionFailedError, match="LibreOffice not installed"):
                await converter.convert_to_text(b"data", ".doc")
            assert converter.is_available() is False

    @pytest.mark.asyncio
    async def test_text_route_and_workspace_cleanup(self, tmp_path: Path) -> None:
        converter = OfficeConverter(temp_root=tmp_path)

        with (
            patch.object(OfficeConverter, "find_binary", return_value="/usr/bin/soffice"),
            patch(
                "src.services.extraction.office_converter.asyncio.create_subprocess_exec",
                side_effect=_fake_soffice("legacy body text"),
            ) as mock_exec,
        ):
            text = await converter.convert_to_text(b"\xd0\xcf\x11\xe0", ".DOC")

        assert text == "legacy body text"
        assert "txt:Text" in mock_exec.call_args.args
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_nonzero_exit_raises_and_cleans_up(self, tmp_path: Path) -> None:
        converter = OfficeConverter(temp_root=tmp_path)

        with (
            patch.object(OfficeConverter, "find_binary", return_value="/usr/bin/soffice"),
            patch(
                "src.services.extraction.office_converter.asyncio.create_subprocess_exec",
                side_effect=_fake_soffice(None, returncode=1),
            ),
        ):
            with pytest.raises(ExtractionFailedError, match="conversion failed"):
                await converter.convert_to_text(b"data", ".doc")

        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_no_output_file(self, tmp_path: Path) -> None:
        converter = OfficeConverter(temp_root=tmp_path)

        with (
            patch.object(OfficeConverter, "find_binary", return_value="/usr/bin/soffice"),
            patch(
                "src.services.extraction.office_converter.asyncio.create_subprocess_exec",
                side_effect=_fake_soffice(None),
            ),
        ):
            with pytest.raises(ExtractionFailedError, match="no output"):
                await converter.convert_to_text(b"data", ".rtf")

    @pytest.mark.asyncio
    async def test_presentations_route_via_pdf(self, tmp_path: Path) -> None:
        converter = OfficeConverter(temp_root=tmp_path)
        proc = MagicMock(returncode=0)
        proc.communicate = AsyncMock(return_value=(b"", b""))

        with (
            patch.object(OfficeConverter, "find_binary", return_value="/usr/bin/soffice"),
            patch(
                "src.services.extraction.office_converter.asyncio.create_subprocess_exec",
                new=AsyncMock(return_value=proc),
            ) as mock_exec,
        ):
            with pytest.raises(ExtractionFailedError):
                await converter.convert_to_text(b"data", ".ppt")

        assert "pdf" in mock_exec.await_args.args

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self, tmp_path: Path) -> None:
        converter = OfficeConverter(temp_root=tmp_path, timeout=0.01)
        proc = MagicMock(returncode=None)

        async def _hang():
            await asyncio.sleep(10)

        proc.communicate = MagicMock(side_effect=lambda: _hang())
        proc.wait = AsyncMock(return_value=-9)

        with (
            patch.object(OfficeConverter, "find_binary", return_value="/usr/bin/soffice"),
            patch(
                "src.services.extraction.office_converter.asyncio.create_subprocess_exec",
                new=AsyncMock(return_value=proc),
            ),
        ):
            with pytest.raises(ExtractionFailedError, match="timed out"):
                await converter.convert_to_text(b"data", ".doc")

        proc.kill.assert_called_once()
        assert list(tmp_path.iterdir()) == []
