"""
tests/unit/scripts/test_convert_url.py

Tests for the chrome-pdf command line.
"""

from pathlib import Path
from unittest.mock import AsyncMock, patch

from chrome_pdf.cdp.data_models import PaperFormat
from chrome_pdf.scripts.convert_url import main, parse_arguments
from chrome_pdf.sdk.converter import ConversionOutput, Converter
from chrome_pdf.utils.exceptions import ConversionTimedOutError


class TestConvertUrl:
    """Tests for parse_arguments / main."""

    def test_parse_arguments(self) -> None:
        args = parse_arguments([
            "https://example.com", "out.png",
            "--format", "png",
            "--paper-format", "A4",
            "--url-blacklist", "*.ads.*", "*.tracker.com/*",
            "--safe-url", "https://example.com/a.js",
            "--safe-url", "https://example.com/b.js",
            "--media-load-timeout", "2000",
        ])
        assert args.format == ConversionOutput.PNG
        assert args.paper_format == PaperFormat.A4
        assert args.output_path == Path("out.png")
        assert args.url_blacklist == ["*.ads.*", "*.tracker.com/*"]
        assert args.safe_url == ["https://example.com/a.js", "https://example.com/b.js"]
        assert args.media_load_timeout == 2000

    def test_main_writes_document(self, tmp_path: Path) -> None:
        output_path = tmp_path / "out" / "example.pdf"
        with patch.object(Converter, "convert", AsyncMock(return_value=b"%PDF-1.7")) as mock_convert:
            exit_code = main([
                "https://example.com", str(output_path),
                "--browser-ws-url", "ws://127.0.0.1:9222/devtools/browser/B1",
                "--landscape",
                "--timeout", "15000",
            ])

        assert exit_code == 0
        assert output_path.read_bytes() == b"%PDF-1.7"
        kwargs = mock_convert.await_args.kwargs
        assert kwargs["timeout_ms"] == 15000
        assert kwargs["page_settings"].landscape is True

    def test_main_reports_failure(self, tmp_path: Path) -> None:
        output_path = tmp_path / "example.pdf"
        with patch.object(
            Converter, "convert", AsyncMock(side_effect=ConversionTimedOutError("The navigate_to method timed out"))
        ):
            exit_code = main(["https://example.com", str(output_path)])

        assert exit_code == 1
        assert not output_path.exists()
