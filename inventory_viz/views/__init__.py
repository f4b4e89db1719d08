from .base_widget import BaseWidget
from .comparison_chart_widget import ComparisonChartWidget
from .error_metrics_widget import ErrorMetricsWidget
from .timeline_chart_widget import TimelineChartWidget

__all__ = ["BaseWidget", "ComparisonChartWidget", "ErrorMetricsWidget", "TimelineChartWidget"]
