"""
Agent boundary: turns a natural-language prompt into an ordered list of tool calls.

``MockAgentService`` is a keyword-driven stand-in used for demos and tests.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from dashboard_core.models import DashboardDocument
from dashboard_core.tools import ToolCall, get_tools


class AgentService(ABC):

    @abstractmethod
    async def chat(self, prompt: str, document: DashboardDocument) -> List[ToolCall]:
        """Plan the tool calls that fulfil ``prompt`` against ``document``."""

    def get_tools(self) -> List[Dict[str, Any]]:
        return get_tools()


def _widget(widget_type: str, title: str, config: Dict[str, Any], dataset_id: str,
            x: int, y: int, w: int, h: int) -> Dict[str, Any]:
    return {
        "name": "add_widget",
        "params": {"type": widget_type, "title": title, "config": config, "datasetId": dataset_id,
                   "x": x, "y": y, "w": w, "h": h},
    }


def _rename(name: str) -> Dict[str, Any]:
    return {"name": "set_dashboard_name", "params": {"name": name}}


def _sales_batch(prompt: str) -> List[Dict[str, Any]]:
    return [
        _rename("Sales Dashboard"),
        {"name": "add_filter_widget", "params": {
            "title": "Region", "datasetId": "sales", "field": "region", "displayType": "button-group",
            "x": 0, "y": 0, "w": 12, "h": 1,
        }},
        _widget("kpi", "Total Revenue", {"label": "Revenue", "prefix": "$", "color": "#3b82f6"}, "sales", 0, 1, 3, 2),
        _widget("kpi", "Total Units", {"label": "Units", "color": "#22c55e"}, "sales", 3, 1, 3, 2),
        _widget("kpi", "Avg Revenue", {"label": "Avg Rev", "prefix": "$", "color": "#8b5cf6"}, "sales", 6, 1, 3, 2),
        _widget("kpi", "Peak Month", {"label": "Peak", "prefix": "$", "color": "#f59e0b"}, "sales", 9, 1, 3, 2),
        _widget("chart", "Monthly Revenue",
                {"chartType": "bar", "xField": "month", "yField": "revenue", "color": "#3b82f6"}, "sales", 0, 3, 6, 4),
        _widget("chart", "Revenue Trend",
                {"chartType": "area", "xField": "month", "yField": "revenue", "color": "#8b5cf6"}, "sales", 6, 3, 6, 4),
        _widget("table", "Sales Details",
                {"columns": ["month", "revenue", "units", "region"], "pageSize": 12}, "sales", 0, 7, 12, 4),
    ]


def _portfolio_batch(prompt: str) -> List[Dict[str, Any]]:
    return [
        _rename("Portfolio Overview"),
        _widget("kpi", "Total Value", {"label": "Portfolio Value", "prefix": "$", "color": "#3b82f6"},
                "portfolio", 0, 0, 4, 2),
        _widget("kpi", "Top Return", {"label": "Best YTD", "suffix": "%", "color": "#10b981"}, "portfolio", 4, 0, 4, 2),
        _widget("kpi", "Holdings", {"label": "Assets", "color": "#8b5cf6"}, "portfolio", 8, 0, 4, 2),
        _widget("chart", "Holdings by Value",
                {"chartType": "bar", "xField": "asset", "yField": "value", "color": "#3b82f6"}, "portfolio", 0, 2, 6, 4),
        _widget("chart", "Sector Allocation",
                {"chartType": "pie", "xField": "sector", "yField": "value", "color": "#8b5cf6"}, "portfolio", 6, 2, 6, 4),
        _widget("table", "All Holdings",
                {"columns": ["asset", "sector", "value", "weight", "return_ytd"], "pageSize": 10},
                "portfolio", 0, 6, 12, 4),
    ]


def _tokens_batch(prompt: str) -> List[Dict[str, Any]]:
    return [
        _rename("AI Token Usage"),
        _widget("kpi", "Total Tokens In", {"label": "Tokens In", "color": "#3b82f6"}, "tokens", 0, 0, 3, 2),
        _widget("kpi", "Total Tokens Out", {"label": "Tokens Out", "color": "#8b5cf6"}, "tokens", 3, 0, 3, 2),
        _widget("kpi", "Total Cost", {"label": "Cost", "prefix": "$", "color": "#ef4444"}, "tokens", 6, 0, 3, 2),
        _widget("kpi", "Models Used", {"label": "Models", "color": "#10b981"}, "tokens", 9, 0, 3, 2),
        _widget("chart", "Cost by Model",
                {"chartType": "bar", "xField": "model", "yField": "cost", "color": "#ef4444"}, "tokens", 0, 2, 6, 4),
        _widget("chart", "Token Volume",
                {"chartType": "area", "xField": "model", "yField": "tokens_in", "color": "#3b82f6"}, "tokens", 6, 2, 6, 4),
        _widget("table", "Usage Log",
                {"columns": ["model", "tokens_in", "tokens_out", "cost", "date"], "pageSize": 10}, "tokens", 0, 6, 12, 4),
    ]


def _default_batch(prompt: str) -> List[Dict[str, Any]]:
    return [
        _rename(f"Dashboard: {prompt[:20]}"),
        _widget("kpi", "Metric 1", {"label": "Revenue", "prefix": "$", "color": "#3b82f6"}, "sales", 0, 0, 3, 2),
        _widget("kpi", "Metric 2", {"label": "Units", "color": "#22c55e"}, "sales", 3, 0, 3, 2),
        _widget("chart", "Chart",
                {"chartType": "line", "xField": "month", "yField": "revenue", "color": "#8b5cf6"}, "sales", 6, 0, 6, 4),
        _widget("table", "Data", {"columns": [], "pageSize": 10}, "sales", 0, 4, 12, 4),
    ]


# 关键词 -> 批次，按顺序匹配
KEYWORD_BATCHES = [
    (("sales", "revenue"), _sales_batch),
    (("portfolio", "invest"), _portfolio_batch),
    (("token", "ai", "usage"), _tokens_batch),
]


class MockAgentService(AgentService):
    """Keyword-matched canned batches; ``delay`` simulates model latency."""

    def __init__(self, delay: float = 0.0):
        self.delay = delay

    async def chat(self, prompt: str, document: DashboardDocument) -> List[ToolCall]:
        if self.delay > 0:
            await asyncio.sleep(self.delay)
        lowered = prompt.lower()
        builder = _default_batch
        for keywords, candidate in KEYWORD_BATCHES:
            if any(k in lowered for k in keywords):
                builder = candidate
                break
        return [ToolCall.model_validate(call) for call in builder(prompt)]
