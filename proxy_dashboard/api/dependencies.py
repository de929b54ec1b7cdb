"""FastAPI dependencies resolving the process-wide dashboard singletons."""

from __future__ import annotations

from proxy_dashboard.proxy.base import ProxySource
from proxy_dashboard.proxy.client import ImageProxyClient
from proxy_dashboard.reports.board import ModerationBoard, ReportBoard, moderation_board, report_board
from proxy_dashboard.workers.sampler import MetricsSampler, sampler

_proxy_client = ImageProxyClient()


def get_sampler() -> MetricsSampler:
    return sampler


def get_report_board() -> ReportBoard:
    return report_board


def get_moderation_board() -> ModerationBoard:
    return moderation_board


def get_proxy_source() -> ProxySource:
    return _proxy_client
