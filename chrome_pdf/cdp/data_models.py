"""
chrome_pdf/cdp/data_models.py

Data models for CDP messages, command results and events.

NOTE: Wire models accept unknown fields (extra='allow'); Chrome adds fields between versions.
"""

import base64
import json
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


## Envelope

class CDPMessage(BaseModel):
    """
    Wire-level unit of the protocol.
    Commands carry an id assigned by the Connection; events carry only method and params.
    """
    method: str = Field(
        ...,
        description="Domain qualified method name",
        examples=["Page.navigate", "Page.lifecycleEvent"],
    )
    params: dict[str, Any] = Field(
        default_factory=dict,
        description="Parameters in insertion order",
    )
    id: int | None = Field(
        default=None,
        description="Correlation id, set on commands only",
    )

    def add_parameter(self, name: str, value: Any) -> "CDPMessage":
        self.params[name] = value
        return self

    def to_wire(self) -> str:
        """Serialize to the JSON text sent over the websocket."""
        payload: dict[str, Any] = {}
        if self.id is not None:
            payload["id"] = self.id
        payload["method"] = self.method
        payload["params"] = self.params
        return json.dumps(payload)


class CDPWireModel(BaseModel):
    """
    Base for models parsed from Chrome payloads (camelCase on the wire).
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


## Target / Page

class TargetCreatedResult(CDPWireModel):
    target_id: str = Field(..., description="Id of the created page target")


class NavigateResult(CDPWireModel):
    frame_id: str | None = None
    loader_id: str | None = None
    error_text: str | None = Field(
        default=None,
        description="Set when Chrome failed to navigate",
        examples=["net::ERR_NAME_NOT_RESOLVED", "net::ERR_BLOCKED_BY_CLIENT"],
    )


class LifecycleEventParams(CDPWireModel):
    frame_id: str | None = None
    loader_id: str | None = None
    name: str = Field(..., examples=["init", "DOMContentLoaded", "load", "networkIdle"])
    timestamp: float | None = None


## Fetch

class InterceptedRequest(CDPWireModel):
    url: str
    method: str | None = None


class RequestPausedParams(CDPWireModel):
    request_id: str
    request: InterceptedRequest
    resource_type: str | None = None


## Network

class NetworkRequest(CDPWireModel):
    url: str
    method: str | None = None


class NetworkResponse(CDPWireModel):
    url: str
    status: int | None = None
    remote_ip_address: str | None = Field(default=None, alias="remoteIPAddress")
    remote_port: int | None = None


class RequestWillBeSentParams(CDPWireModel):
    request_id: str
    request: NetworkRequest
    type: str | None = None


class DataReceivedParams(CDPWireModel):
    request_id: str
    data_length: int | None = None


class ResponseReceivedParams(CDPWireModel):
    request_id: str
    response: NetworkResponse
    type: str | None = None


class LoadingFinishedParams(CDPWireModel):
    request_id: str
    encoded_data_length: float | None = None


class LoadingFailedParams(CDPWireModel):
    request_id: str
    type: str | None = None
    error_text: str | None = None


## Runtime

class RemoteObject(CDPWireModel):
    type: str | None = None
    value: Any = None
    description: str | None = None


class ExceptionDetails(CDPWireModel):
    text: str | None = None
    exception: RemoteObject | None = None

    @property
    def error_description(self) -> str:
        if self.exception and self.exception.description:
            return self.exception.description
        return self.text or ""


class EvaluateResult(CDPWireModel):
    result: RemoteObject | None = None
    exception_details: ExceptionDetails | None = None


## Output payloads

class Base64DataResponse(CDPWireModel):
    """
    A command result whose `data` field holds base64 encoded binary content.
    """
    data: str = ""

    def to_bytes(self) -> bytes:
        return base64.b64decode(self.data)


class PrintToPdfResponse(Base64DataResponse):
    pass


class CaptureScreenshotResponse(Base64DataResponse):
    pass


class SnapshotResponse(CDPWireModel):
    """
    Result of Page.captureSnapshot; `data` is the MHTML text of the page.
    """
    data: str = ""


## Print settings

class PaperFormat(StrEnum):
    """Common paper formats, see PageSettings.from_paper_format."""
    LETTER = "Letter"
    LEGAL = "Legal"
    TABLOID = "Tabloid"
    LEDGER = "Ledger"
    A0 = "A0"
    A1 = "A1"
    A2 = "A2"
    A3 = "A3"
    A4 = "A4"
    A5 = "A5"
    A6 = "A6"
    FIT_PAGE_TO_CONTENT = "FitPageToContent"


# width, height in inches
PAPER_SIZES: dict[PaperFormat, tuple[float, float]] = {
    PaperFormat.LETTER: (8.5, 11),
    PaperFormat.LEGAL: (8.5, 14),
    PaperFormat.TABLOID: (11, 17),
    PaperFormat.LEDGER: (17, 11),
    PaperFormat.A0: (33.1, 46.8),
    PaperFormat.A1: (23.4, 33.1),
    PaperFormat.A2: (16.5, 23.4),
    PaperFormat.A3: (11.7, 16.5),
    PaperFormat.A4: (8.27, 11.7),
    PaperFormat.A5: (5.83, 8.27),
    PaperFormat.A6: (4.13, 5.83),
}


class PageSettings(BaseModel):
    """
    Parameters of Page.printToPDF. Sizes and margins are in inches.
    """
    landscape: bool = Field(default=False, description="Paper orientation")
    display_header_footer: bool = Field(default=False, description="Display header and footer")
    print_background: bool = Field(default=False, description="Print background graphics")
    scale: float = Field(default=1.0, gt=0, description="Scale of the webpage rendering")
    paper_width: float = Field(default=8.5, gt=0)
    paper_height: float = Field(default=11.0, gt=0)
    margin_top: float = Field(default=0.4, ge=0)
    margin_bottom: float = Field(default=0.4, ge=0)
    margin_left: float = Field(default=0.4, ge=0)
    margin_right: float = Field(default=0.4, ge=0)
    page_ranges: str | None = Field(
        default=None,
        description="Paper ranges to print, e.g. '1-5, 8, 11-13'. Empty means all pages",
    )
    ignore_invalid_page_ranges: bool = Field(default=False)
    header_template: str | None = Field(default=None, description="HTML template for the print header")
    footer_template: str | None = Field(default=None, description="HTML template for the print footer")
    prefer_css_page_size: bool = Field(
        default=False,
        description="Prefer page size as defined by css over paper_width / paper_height",
    )

    @classmethod
    def from_paper_format(cls, paper_format: PaperFormat, **kwargs: Any) -> "PageSettings":
        """
        Build settings for a named paper format.
        FIT_PAGE_TO_CONTENT keeps the default paper size and lets the page css decide.
        """
        if paper_format == PaperFormat.FIT_PAGE_TO_CONTENT:
            kwargs.setdefault("prefer_css_page_size", True)
            return cls(**kwargs)
        width, height = PAPER_SIZES[paper_format]
        return cls(paper_width=width, paper_height=height, **kwargs)

    def to_print_params(self) -> dict[str, Any]:
        """Parameters for Page.printToPDF in protocol order."""
        params: dict[str, Any] = {
            "landscape": self.landscape,
            "displayHeaderFooter": self.display_header_footer,
            "printBackground": self.print_background,
            "scale": self.scale,
            "paperWidth": self.paper_width,
            "paperHeight": self.paper_height,
            "marginTop": self.margin_top,
            "marginBottom": self.margin_bottom,
            "marginLeft": self.margin_left,
            "marginRight": self.margin_right,
            "pageRanges": self.page_ranges or "",
            "ignoreInvalidPageRanges": self.ignore_invalid_page_ranges,
        }
        if self.header_template:
            params["headerTemplate"] = self.header_template
        if self.footer_template:
            params["footerTemplate"] = self.footer_template
        params["preferCSSPageSize"] = self.prefer_css_page_size
        return params
