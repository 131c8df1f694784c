"""
chrome_pdf/cdp/monitors

Page connection subscribers.
"""

from chrome_pdf.cdp.monitors.abstract_monitor import AbstractMonitor
from chrome_pdf.cdp.monitors.network_traffic_monitor import NetworkTrafficMonitor
from chrome_pdf.cdp.monitors.request_interception_monitor import InterceptionDecision, RequestInterceptionMonitor

__all__ = [
    "AbstractMonitor",
    "InterceptionDecision",
    "NetworkTrafficMonitor",
    "RequestInterceptionMonitor",
]
