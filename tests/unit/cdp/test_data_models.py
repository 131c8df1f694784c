"""
tests/unit/cdp/test_data_models.py

Tests for the CDP data models.
"""

import base64
import json

import pytest
from pydantic import ValidationError

from chrome_pdf.cdp.data_models import (
    CDPMessage,
    EvaluateResult,
    NavigateResult,
    NetworkResponse,
    PageSettings,
    PaperFormat,
    PrintToPdfResponse,
    RequestPausedParams,
)


class TestCDPMessage:
    """Tests for CDPMessage."""

    def test_command_wire_format(self) -> None:
        message = CDPMessage(method="Page.navigate", id=3).add_parameter("url", "https://example.com")
        assert json.loads(message.to_wire()) == {
            "id": 3,
            "method": "Page.navigate",
            "params": {"url": "https://example.com"},
        }

    def test_event_has_no_id(self) -> None:
        assert "id" not in json.loads(CDPMessage(method="Page.enable").to_wire())

    def test_parameters_keep_insertion_order(self) -> None:
        message = CDPMessage(method="Fetch.failRequest")
        message.add_parameter("requestId", "r1").add_parameter("errorReason", "BlockedByClient")
        assert message.to_wire() == (
            '{"method": "Fetch.failRequest", "params": {"requestId": "r1", "errorReason": "BlockedByClient"}}'
        )


class TestWireModels:
    """Tests for models parsed from Chrome payloads."""

    def test_camel_case_parsing(self) -> None:
        paused = RequestPausedParams.model_validate({
            "requestId": "interception-job-1.0",
            "request": {"url": "https://example.com/a.js", "method": "GET", "headers": {}},
            "resourceType": "Script",
            "frameId": "F1",
        })
        assert paused.request_id == "interception-job-1.0"
        assert paused.request.url == "https://example.com/a.js"
        assert paused.resource_type == "Script"

    def test_remote_ip_address_alias(self) -> None:
        response = NetworkResponse.model_validate({"url": "https://example.com/", "remoteIPAddress": "10.0.0.1"})
        assert response.remote_ip_address == "10.0.0.1"

    def test_navigate_result_error_text(self) -> None:
        assert NavigateResult.model_validate({"frameId": "F1"}).error_text is None
        assert NavigateResult.model_validate(
            {"frameId": "F1", "errorText": "net::ERR_ABORTED"}
        ).error_text == "net::ERR_ABORTED"

    def test_missing_required_field(self) -> None:
        with pytest.raises(ValidationError):
            RequestPausedParams.model_validate({"request": {"url": "https://example.com/"}})

    def test_exception_description(self) -> None:
        result = EvaluateResult.model_validate({
            "result": {"type": "object"},
            "exceptionDetails": {"text": "Uncaught", "exception": {"description": "TypeError: x is undefined"}},
        })
        assert result.exception_details.error_description == "TypeError: x is undefined"

    def test_exception_description_falls_back_to_text(self) -> None:
        result = EvaluateResult.model_validate({"exceptionDetails": {"text": "Uncaught SyntaxError"}})
        assert result.exception_details.error_description == "Uncaught SyntaxError"

    def test_base64_data(self) -> None:
        response = PrintToPdfResponse.model_validate({"data": base64.b64encode(b"%PDF-1.7").decode()})
        assert response.to_bytes() == b"%PDF-1.7"
        assert PrintToPdfResponse.model_validate({}).data == ""


class TestPageSettings:
    """Tests for PageSettings."""

    def test_default_print_params(self) -> None:
        assert PageSettings().to_print_params() == {
            "landscape": False,
            "displayHeaderFooter": False,
            "printBackground": False,
            "scale": 1.0,
            "paperWidth": 8.5,
            "paperHeight": 11.0,
            "marginTop": 0.4,
            "marginBottom": 0.4,
            "marginLeft": 0.4,
            "marginRight": 0.4,
            "pageRanges": "",
            "ignoreInvalidPageRanges": False,
            "preferCSSPageSize": False,
        }

    def test_templates_only_when_set(self) -> None:
        params = PageSettings(
            display_header_footer=True,
            header_template="<div class='title'></div>",
            footer_template="",
        ).to_print_params()
        assert params["headerTemplate"] == "<div class='title'></div>"
        assert "footerTemplate" not in params
        assert list(params).index("headerTemplate") < list(params).index("preferCSSPageSize")

    def test_from_paper_format(self) -> None:
        settings = PageSettings.from_paper_format(PaperFormat.A4, landscape=True)
        assert (settings.paper_width, settings.paper_height) == (8.27, 11.7)
        assert settings.landscape is True

    def test_fit_page_to_content(self) -> None:
        settings = PageSettings.from_paper_format(PaperFormat.FIT_PAGE_TO_CONTENT)
        assert settings.prefer_css_page_size is True

    def test_invalid_scale(self) -> None:
        with pytest.raises(ValidationError):
            PageSettings(scale=0)
