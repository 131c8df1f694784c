"""
chrome_pdf/sdk

High-level conversion interface.
"""

from chrome_pdf.sdk.converter import ConversionOutput, Converter

__all__ = ["ConversionOutput", "Converter"]
