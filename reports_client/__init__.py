from .client import RemoteReportClient

__all__ = ["RemoteReportClient"]
