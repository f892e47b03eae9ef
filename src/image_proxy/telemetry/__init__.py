"""Telemetry utilities (structured request logging)."""

from image_proxy.telemetry.structured_logging import log_request_event

__all__ = ["log_request_event"]
